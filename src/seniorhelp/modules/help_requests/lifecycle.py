"""
Help Request Lifecycle

The pure part of the request workflow: the status state machines, the
verification gate, visibility, and the volunteer-hour accrual rule. Nothing
here touches the database, so every guard can be unit tested directly.

Request lifecycle:

    open -> claimed -> scheduled -> in_progress -> completed
      \\________\\__________\\____________\\------> cancelled

A request may be signed off (completed) straight from scheduled; the
in_progress step is optional. completed and cancelled are terminal.
"""

from uuid import UUID

from seniorhelp.core.auth import ActorContext
from seniorhelp.modules.help_requests.models import HelpRequest, RequestStatus, SessionStatus
from seniorhelp.modules.users.models import StudentProfile, VerificationStatus

MIN_RATING = 1
MAX_RATING = 5
MINUTES_PER_HOUR = 60

VALID_STATUS_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.OPEN: {
        RequestStatus.CLAIMED,  # Verified student claims
        RequestStatus.CANCELLED,
    },
    RequestStatus.CLAIMED: {
        RequestStatus.SCHEDULED,  # Claimant books a session
        RequestStatus.CANCELLED,
    },
    RequestStatus.SCHEDULED: {
        RequestStatus.IN_PROGRESS,  # Session started
        RequestStatus.COMPLETED,  # Senior signs off
        RequestStatus.CANCELLED,
    },
    RequestStatus.IN_PROGRESS: {
        RequestStatus.COMPLETED,  # Senior signs off
        RequestStatus.CANCELLED,
    },
    # Terminal states - no transitions allowed
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}

SESSION_STATUS_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.SCHEDULED: {
        SessionStatus.IN_PROGRESS,
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
    },
    SessionStatus.IN_PROGRESS: {
        SessionStatus.COMPLETED,
        SessionStatus.CANCELLED,
    },
    SessionStatus.COMPLETED: set(),
    SessionStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})

# Statuses from which the senior may sign off
SIGN_OFF_REQUEST_STATUSES = frozenset({RequestStatus.SCHEDULED, RequestStatus.IN_PROGRESS})
SIGN_OFF_SESSION_STATUSES = frozenset({SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS})

# Session statuses that still need a decision when the request is cancelled
ACTIVE_SESSION_STATUSES = SIGN_OFF_SESSION_STATUSES


class InvalidStatusTransitionError(ValueError):
    """Raised when a status change is not allowed by the state machine."""

    def __init__(
        self,
        current_status: RequestStatus | SessionStatus,
        new_status: RequestStatus | SessionStatus,
        valid_transitions: set,
    ):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def ensure_transition(current: RequestStatus, new: RequestStatus) -> RequestStatus:
    """
    Validate a request status change.

    Returns:
        The new status

    Raises:
        InvalidStatusTransitionError: If the transition is not in the table
    """
    valid = VALID_STATUS_TRANSITIONS.get(current, set())
    if new not in valid:
        raise InvalidStatusTransitionError(current, new, valid)
    return new


def ensure_session_transition(current: SessionStatus, new: SessionStatus) -> SessionStatus:
    """Validate a session status change. Same contract as ensure_transition."""
    valid = SESSION_STATUS_TRANSITIONS.get(current, set())
    if new not in valid:
        raise InvalidStatusTransitionError(current, new, valid)
    return new


def is_terminal(status: RequestStatus) -> bool:
    return status in TERMINAL_STATUSES


def claimant_invariant_holds(status: RequestStatus, student_id: UUID | None) -> bool:
    """
    A request has no claimant exactly when it is open.

    Cancelled requests keep whatever claimant they had (none if cancelled
    while open), so the rule is not checked for them.
    """
    if status == RequestStatus.CANCELLED:
        return True
    return (student_id is None) == (status == RequestStatus.OPEN)


def can_claim(profile: StudentProfile | None) -> bool:
    """Only approved students may claim requests."""
    return profile is not None and profile.verification_status == VerificationStatus.APPROVED


def can_see_request(actor: ActorContext, request: HelpRequest) -> bool:
    """
    Visibility of a single request.

    Any student, verified or not, may browse open requests. Otherwise only
    the requester, the claimant and admins can see it.
    """
    if actor.is_admin:
        return True
    if actor.id in (request.senior_id, request.student_id):
        return True
    return actor.is_student and request.status == RequestStatus.OPEN


def is_participant(actor: ActorContext, request: HelpRequest) -> bool:
    """True if the actor is the requester or the claimant."""
    return actor.id == request.senior_id or (
        request.student_id is not None and actor.id == request.student_id
    )


def is_valid_rating(rating: object) -> bool:
    """Ratings are whole stars from 1 to 5 inclusive."""
    return (
        isinstance(rating, int)
        and not isinstance(rating, bool)
        and MIN_RATING <= rating <= MAX_RATING
    )


def hours_to_add(actual_duration_minutes: int) -> float:
    """
    Volunteer hours earned for a signed-off session.

    Args:
        actual_duration_minutes: Duration confirmed by the senior

    Returns:
        actual_duration_minutes / 60

    Raises:
        ValueError: If the duration is not positive
    """
    if actual_duration_minutes <= 0:
        raise ValueError(f"Duration must be positive, got {actual_duration_minutes}")
    return actual_duration_minutes / MINUTES_PER_HOUR
