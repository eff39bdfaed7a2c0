"""
Service Errors

Every service-layer failure carries a stable error code and the HTTP status a
router should answer with. Callers can tell a conflict (refresh state and
retry) apart from a validation error (fix the input).
"""

from uuid import UUID


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed or out-of-range input (past timestamp, bad rating, ...)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="VALIDATION_ERROR", status_code=422)


class ConflictError(ServiceError):
    """The record is not in the state the operation requires."""

    def __init__(self, message: str, current_state: str | None = None):
        self.current_state = current_state
        detail = message
        if current_state:
            detail = f"{message} Current state: {current_state}"
        super().__init__(message=detail, error_code="CONFLICT", status_code=409)


class VerificationRequiredError(ServiceError):
    """The student has not been approved and may not claim requests."""

    def __init__(self):
        super().__init__(
            message=(
                "You must be verified to claim requests. "
                "Please upload your verification documents in your profile."
            ),
            error_code="VERIFICATION_REQUIRED",
            status_code=403,
        )


class PermissionDeniedError(ServiceError):
    """The actor is not the party allowed to perform this operation."""

    def __init__(self, message: str = "You are not allowed to perform this action."):
        super().__init__(message=message, error_code="PERMISSION_DENIED", status_code=403)


class NotFoundError(ServiceError):
    """A referenced request, session or profile does not exist."""

    def __init__(self, entity: str, entity_id: UUID | None = None):
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(message=message, error_code="NOT_FOUND", status_code=404)
