"""
Token Verification

Access tokens are issued by the external auth provider. This module only
verifies them and returns their claims.
"""

import logging
from typing import Any

from jose import JWTError, jwt

from seniorhelp.core.config import settings

logger = logging.getLogger(__name__)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT access token.

    Checks the signature, algorithm and expiry, plus the audience when
    ``JWT_AUDIENCE`` is configured.

    Args:
        token: Encoded JWT string

    Returns:
        The token claims, or None if the token is invalid or expired
    """
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        logger.debug(f"Token verification failed: {e}")
        return None
