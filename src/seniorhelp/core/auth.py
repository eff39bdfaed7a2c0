"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
Bearer tokens are issued by the external auth provider and verified with
security.decode_token. The result is an explicit ActorContext that routers
pass into every service call, so services never read ambient user state.

SECURITY NOTE:
- Development mode test tokens are ONLY accepted when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from seniorhelp.core.config import settings
from seniorhelp.core.security import decode_token
from seniorhelp.modules.users.models import UserRole

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token issued by the auth provider",
)


@dataclass(frozen=True)
class ActorContext:
    """
    The authenticated user performing an operation.

    Attributes:
        id: Profile UUID (the auth provider's user id)
        role: senior, student or admin
        email: Email claim, if present
        name: Display name claim, if present
    """

    id: UUID
    role: UserRole
    email: str | None = None
    name: str | None = None

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    @property
    def is_senior(self) -> bool:
        return self.role == UserRole.SENIOR

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __str__(self) -> str:
        return f"ActorContext(id={self.id}, role={self.role.value})"


def _is_dev_mode_safe() -> bool:
    """
    Check if development test tokens may be accepted.

    Both the loaded settings and the raw PYTHON_ENV variable must agree that
    this is a development environment.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()


def _parse_dev_token(token: str) -> ActorContext | None:
    """Accept "<role>:<uuid>" tokens, e.g. "student:0000...0002", in development."""
    role_str, sep, id_str = token.partition(":")
    if not sep:
        return None
    try:
        return ActorContext(id=UUID(id_str), role=UserRole(role_str), name=f"Dev {role_str}")
    except ValueError:
        return None


def _credentials_error(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_token(token: str) -> ActorContext:
    """
    Validate a bearer token and build the actor context from its claims.

    Raises:
        HTTPException 401: If the token is invalid, expired or lacks claims
    """
    if _DEVELOPMENT_MODE:
        actor = _parse_dev_token(token)
        if actor is not None:
            logger.debug("Development mode: using test token")
            return actor

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _credentials_error("INVALID_TOKEN", "Invalid or expired authentication token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        # Providers put application roles in app_metadata; fall back to a top-level claim
        app_metadata = payload.get("app_metadata") or {}
        role = UserRole(app_metadata.get("role") or payload.get("role", ""))

        return ActorContext(
            id=UUID(user_id_str),
            role=role,
            email=payload.get("email"),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _credentials_error(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> ActorContext:
    """
    FastAPI dependency that validates the bearer token and returns the actor.

    Usage:
        @router.post("/requests/{id}/claim")
        async def claim(id: UUID, actor: ActorContext = Depends(get_current_actor)):
            ...
    """
    actor = await _validate_token(credentials.credentials)
    logger.debug(f"Authenticated actor: {actor}")
    return actor


async def get_current_admin(
    actor: ActorContext = Depends(get_current_actor),
) -> ActorContext:
    """
    FastAPI dependency requiring the admin role.

    Raises:
        HTTPException 403: If the actor is not an admin
    """
    if not actor.is_admin:
        logger.warning(f"Access denied: actor {actor.id} has role '{actor.role.value}'")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )
    return actor


__all__ = [
    "ActorContext",
    "get_current_actor",
    "get_current_admin",
]
