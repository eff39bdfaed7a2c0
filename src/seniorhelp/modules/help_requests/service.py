"""
Help Requests Service Layer

Business logic for the help request lifecycle. Orchestrates the pure state
machine (lifecycle.py), the repositories, and best-effort notifications.

This module implements:
1. Request creation and browsing
   - Seniors post requests; any student may browse open ones
2. Claim (open -> claimed)
   - Only approved students; compare-and-set so concurrent claims conflict
3. Scheduling (claimed -> scheduled)
   - Claimant books a future time; session + status change commit together
4. Session start (scheduled -> in_progress)
5. Sign-off (scheduled/in_progress -> completed)
   - Senior confirms duration and rating; session update, hour accrual,
     review insert and request completion run in ONE transaction
   - A second sign-off is rejected, so hours are never counted twice
6. Cancellation (any non-terminal -> cancelled)
7. Messaging between the requester and the claimant

Every operation takes an explicit ActorContext. All guards run before the
first write; a guard failure never leaves a partial transition behind.
Notifications never fail an operation.
"""

import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from seniorhelp.core.auth import ActorContext
from seniorhelp.core.config import settings
from seniorhelp.core.email import (
    send_new_message,
    send_request_cancelled,
    send_request_claimed,
    send_session_scheduled,
)
from seniorhelp.core.rate_limit import check_rate_limit
from seniorhelp.modules.help_requests import repository
from seniorhelp.modules.help_requests.calendar import generate_ics
from seniorhelp.modules.help_requests.lifecycle import (
    SIGN_OFF_REQUEST_STATUSES,
    SIGN_OFF_SESSION_STATUSES,
    can_claim,
    can_see_request,
    hours_to_add,
    is_participant,
    is_terminal,
    is_valid_rating,
)
from seniorhelp.modules.help_requests.models import (
    HelpRequest,
    HelpSession,
    Message,
    RequestStatus,
    Review,
    SessionStatus,
    Urgency,
)
from seniorhelp.modules.help_requests.schemas import HelpRequestCreate, SessionCreate
from seniorhelp.modules.shared.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
    VerificationRequiredError,
)
from seniorhelp.modules.users.repository import ProfileRepository

logger = logging.getLogger(__name__)


class RateLimitExceededError(ServiceError):
    """Raised when an actor sends messages too quickly."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            message=f"Too many messages. Please wait {retry_after_seconds} seconds.",
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=429,
        )


@dataclass
class SignOffResult:
    """Everything a completed sign-off produced."""

    session: HelpSession
    review: Review
    request: HelpRequest
    hours_added: float


@contextlib.asynccontextmanager
async def _transaction(db: AsyncSession) -> AsyncIterator[None]:
    """Commit the enclosed writes together, or roll all of them back."""
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def _notify(description: str, send: Awaitable[bool]) -> None:
    """Await a notification; log failures, never raise."""
    try:
        sent = await send
        if not sent:
            logger.error(f"Failed to send {description}")
    except Exception as e:
        logger.error(f"Exception sending {description}: {e}", exc_info=True)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _meeting_link(request_id: UUID, now: datetime) -> str:
    """Unique video room per session."""
    room_id = f"gc-{request_id}-{int(now.timestamp() * 1000)}"
    return f"{settings.meeting_base_url.rstrip('/')}/{room_id}"


async def _get_request_or_raise(db: AsyncSession, request_id: UUID) -> HelpRequest:
    request = await repository.get_by_id(db, request_id, refresh=True)
    if not request:
        logger.warning(f"Help request not found: {request_id}")
        raise NotFoundError("Help request", request_id)
    return request


async def _get_session_or_raise(db: AsyncSession, session_id: UUID) -> HelpSession:
    session = await repository.get_session(db, session_id, refresh=True)
    if not session:
        logger.warning(f"Session not found: {session_id}")
        raise NotFoundError("Session", session_id)
    return session


# ============================================
# Requests
# ============================================


async def create_request(
    db: AsyncSession,
    actor: ActorContext,
    data: HelpRequestCreate,
) -> HelpRequest:
    """
    Post a new help request.

    Raises:
        PermissionDeniedError: If the actor is not a senior
    """
    if not actor.is_senior:
        raise PermissionDeniedError("Only seniors can create help requests.")

    async with _transaction(db):
        request = await repository.create_request(db, actor.id, data)

    logger.info(f"Senior {actor.id} created help request {request.id} ({data.category})")
    return request


async def get_request(db: AsyncSession, actor: ActorContext, request_id: UUID) -> HelpRequest:
    """
    Get a single request the actor is allowed to see.

    Requests the actor may not see are reported as not found.
    """
    request = await _get_request_or_raise(db, request_id)

    if not can_see_request(actor, request):
        logger.warning(f"Actor {actor.id} may not view request {request_id}")
        raise NotFoundError("Help request", request_id)

    return request


async def list_open_requests(
    db: AsyncSession,
    actor: ActorContext,
    *,
    category: str | None = None,
    urgency: Urgency | None = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """
    Browse open requests. Students do not need to be verified to browse.

    Returns:
        Dict with requests, total, skip and limit
    """
    if not (actor.is_student or actor.is_admin):
        raise PermissionDeniedError("Only students can browse open requests.")

    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    requests, total = await repository.list_open_requests(
        db, category=category, urgency=urgency, skip=skip, limit=limit
    )
    return {"requests": requests, "total": total, "skip": skip, "limit": limit}


async def list_my_requests(
    db: AsyncSession,
    actor: ActorContext,
    *,
    status: RequestStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """Requests the actor created (seniors) or claimed (students)."""
    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    requests, total = await repository.list_for_participant(
        db, actor.id, status=status, skip=skip, limit=limit
    )
    return {"requests": requests, "total": total, "skip": skip, "limit": limit}


async def claim_request(db: AsyncSession, actor: ActorContext, request_id: UUID) -> HelpRequest:
    """
    Claim an open request (open -> claimed).

    Guards, in order: the request exists, the actor is a student other than
    the requester, the student is approved, the request is still open. The
    write itself only succeeds if nobody claimed the request in between.

    Raises:
        NotFoundError: If the request doesn't exist
        PermissionDeniedError: If the actor is not a student or is the requester
        VerificationRequiredError: If the student is not approved
        ConflictError: If the request is no longer open
    """
    logger.info(f"Student {actor.id} claiming request {request_id}")

    request = await _get_request_or_raise(db, request_id)

    if not actor.is_student:
        raise PermissionDeniedError("Only students can claim requests.")

    if actor.id == request.senior_id:
        raise PermissionDeniedError("You cannot claim your own request.")

    profile = await ProfileRepository.get_student_profile(db, actor.id, refresh=True)
    if not can_claim(profile):
        logger.warning(f"Unverified student {actor.id} tried to claim request {request_id}")
        raise VerificationRequiredError()

    if request.status != RequestStatus.OPEN or request.student_id is not None:
        logger.warning(f"Cannot claim request {request_id}: status={request.status.value}")
        raise ConflictError("This request has already been claimed.", request.status.value)

    async with _transaction(db):
        claimed = await repository.claim(db, request_id, actor.id, datetime.now(UTC))
        if not claimed:
            logger.warning(f"Lost claim race for request {request_id}")
            raise ConflictError("This request has already been claimed.")

    request = await _get_request_or_raise(db, request_id)
    logger.info(f"Request {request_id} claimed by student {actor.id}")

    senior = await ProfileRepository.get_profile(db, request.senior_id)
    if senior and senior.email:
        student = await ProfileRepository.get_profile(db, actor.id)
        await _notify(
            f"claim notification for request {request_id}",
            send_request_claimed(
                to_email=senior.email,
                senior_name=senior.full_name,
                student_name=student.full_name if student else (actor.name or "A volunteer"),
                request_title=request.title,
                request_id=str(request_id),
            ),
        )

    return request


async def cancel_request(
    db: AsyncSession,
    actor: ActorContext,
    request_id: UUID,
    reason: str | None = None,
) -> HelpRequest:
    """
    Cancel a request that has not finished (any non-terminal -> cancelled).

    The requester, the claimant and admins may cancel. Open sessions of the
    request are cancelled with it.

    Raises:
        NotFoundError: If the request doesn't exist
        PermissionDeniedError: If the actor is not a participant or admin
        ConflictError: If the request is already completed or cancelled
    """
    request = await _get_request_or_raise(db, request_id)

    if not (actor.is_admin or is_participant(actor, request)):
        raise PermissionDeniedError("Only the requester or the volunteer can cancel.")

    if is_terminal(request.status):
        raise ConflictError("This request can no longer be cancelled.", request.status.value)

    async with _transaction(db):
        cancelled = await repository.update_status(
            db, request_id, [request.status], RequestStatus.CANCELLED
        )
        if not cancelled:
            raise ConflictError("This request changed while cancelling. Please refresh.")
        sessions_cancelled = await repository.cancel_active_sessions(db, request_id)

    request = await _get_request_or_raise(db, request_id)
    logger.info(
        f"Request {request_id} cancelled by {actor.id} "
        f"({sessions_cancelled} session(s) cancelled)"
    )

    # Tell the other participant, if there is one
    other_id = request.student_id if actor.id == request.senior_id else request.senior_id
    if other_id and other_id != actor.id:
        other = await ProfileRepository.get_profile(db, other_id)
        if other and other.email:
            await _notify(
                f"cancellation notice for request {request_id}",
                send_request_cancelled(
                    to_email=other.email,
                    recipient_name=other.full_name,
                    request_title=request.title,
                    reason=reason,
                ),
            )

    return request


# ============================================
# Sessions
# ============================================


async def schedule_session(
    db: AsyncSession,
    actor: ActorContext,
    data: SessionCreate,
    *,
    now: datetime | None = None,
) -> HelpSession:
    """
    Book a session for a claimed request (claimed -> scheduled).

    Raises:
        ValidationError: If the time is not strictly in the future or the
            duration is not positive
        NotFoundError: If the request doesn't exist
        PermissionDeniedError: If the actor is not the claimant
        ConflictError: If the request is not in the claimed state
    """
    now = now or datetime.now(UTC)
    scheduled_time = _as_utc(data.scheduled_time)

    if scheduled_time <= now:
        raise ValidationError("Please select a future date and time.")
    if data.duration_minutes <= 0:
        raise ValidationError("Session duration must be a positive number of minutes.")

    request = await _get_request_or_raise(db, data.request_id)

    if request.student_id is None or actor.id != request.student_id:
        raise PermissionDeniedError("Only the volunteer who claimed this request can schedule it.")

    if request.status != RequestStatus.CLAIMED:
        raise ConflictError("Sessions can only be scheduled for claimed requests.", request.status.value)

    async with _transaction(db):
        session = await repository.create_session(
            db,
            request=request,
            scheduled_time=scheduled_time,
            duration_minutes=data.duration_minutes,
            meeting_link=_meeting_link(request.id, now),
            notes=data.notes,
        )
        updated = await repository.update_status(
            db,
            request.id,
            [RequestStatus.CLAIMED],
            RequestStatus.SCHEDULED,
            student_id=actor.id,
        )
        if not updated:
            raise ConflictError("This request changed while scheduling. Please refresh.")

    logger.info(f"Session {session.id} scheduled for request {request.id} at {scheduled_time}")

    for participant_id in (request.senior_id, request.student_id):
        participant = await ProfileRepository.get_profile(db, participant_id)
        if participant and participant.email:
            await _notify(
                f"session scheduled email for session {session.id}",
                send_session_scheduled(
                    to_email=participant.email,
                    recipient_name=participant.full_name,
                    request_title=request.title,
                    scheduled_time=scheduled_time,
                    duration_minutes=session.duration_minutes,
                    meeting_link=session.meeting_link,
                    session_id=str(session.id),
                ),
            )

    return session


async def get_session(db: AsyncSession, actor: ActorContext, session_id: UUID) -> HelpSession:
    """Get a session the actor takes part in (admins see all)."""
    session = await _get_session_or_raise(db, session_id)

    if not (actor.is_admin or actor.id in (session.student_id, session.senior_id)):
        raise NotFoundError("Session", session_id)

    return session


async def list_my_sessions(
    db: AsyncSession,
    actor: ActorContext,
    *,
    status: SessionStatus | None = None,
) -> list[HelpSession]:
    return await repository.list_sessions_for_participant(db, actor.id, status=status)


async def start_session(db: AsyncSession, actor: ActorContext, session_id: UUID) -> HelpSession:
    """
    Mark a scheduled session as started (scheduled -> in_progress).

    Either participant may start it; the parent request follows.

    Raises:
        NotFoundError: If the session or its request doesn't exist
        PermissionDeniedError: If the actor is not a participant
        ConflictError: If the session is not scheduled
    """
    session = await _get_session_or_raise(db, session_id)
    request = await _get_request_or_raise(db, session.request_id)

    if actor.id not in (session.student_id, session.senior_id):
        raise PermissionDeniedError("Only the session participants can start it.")

    if session.status != SessionStatus.SCHEDULED:
        raise ConflictError("Only scheduled sessions can be started.", session.status.value)

    if request.status != RequestStatus.SCHEDULED:
        raise ConflictError("The request is not scheduled.", request.status.value)

    async with _transaction(db):
        started = await repository.update_session_status(
            db, session_id, [SessionStatus.SCHEDULED], SessionStatus.IN_PROGRESS
        )
        request_started = await repository.update_status(
            db, request.id, [RequestStatus.SCHEDULED], RequestStatus.IN_PROGRESS
        )
        if not (started and request_started):
            raise ConflictError("This session changed while starting. Please refresh.")

    logger.info(f"Session {session_id} started by {actor.id}")
    return await _get_session_or_raise(db, session_id)


async def sign_off_session(
    db: AsyncSession,
    actor: ActorContext,
    session_id: UUID,
    *,
    actual_duration_minutes: int,
    rating: int,
    comment: str | None = None,
) -> SignOffResult:
    """
    Senior confirms a session took place (scheduled/in_progress -> completed).

    In a single transaction:
    1. Session gets the actual duration, senior_signed_off, completed status
       and completion time (only if it was not signed off yet)
    2. The student's total_hours grows by actual_duration_minutes / 60
    3. One review (senior -> student) is inserted
    4. The parent request becomes completed

    If any step fails, none of them are kept. A repeated sign-off is
    rejected, so hours are accrued exactly once per session.

    Raises:
        ValidationError: If the rating is not 1-5 or the duration is not positive
        NotFoundError: If the session, request or student profile doesn't exist
        PermissionDeniedError: If the actor is not the requesting senior
        ConflictError: If the session was already signed off or is not active
    """
    if not is_valid_rating(rating):
        raise ValidationError("Please provide a rating from 1 to 5 stars.")
    if isinstance(actual_duration_minutes, bool) or not isinstance(actual_duration_minutes, int):
        raise ValidationError("Please enter the actual session duration in whole minutes.")
    try:
        hours = hours_to_add(actual_duration_minutes)
    except ValueError as e:
        raise ValidationError("Please enter the actual session duration.") from e

    session = await _get_session_or_raise(db, session_id)
    request = await _get_request_or_raise(db, session.request_id)

    if actor.id != request.senior_id:
        raise PermissionDeniedError("Only the senior who asked for help can sign off.")

    if session.senior_id != request.senior_id or session.student_id != request.student_id:
        logger.error(f"Session {session_id} participants do not match request {request.id}")
        raise ConflictError("This session does not belong to the request's participants.")

    if session.senior_signed_off:
        logger.warning(f"Repeated sign-off attempt for session {session_id}")
        raise ConflictError("This session has already been signed off.", session.status.value)

    if session.status not in SIGN_OFF_SESSION_STATUSES:
        raise ConflictError("Only scheduled or running sessions can be signed off.", session.status.value)

    if request.status not in SIGN_OFF_REQUEST_STATUSES:
        raise ConflictError("The request is not awaiting sign-off.", request.status.value)

    student_profile = await ProfileRepository.get_student_profile(db, session.student_id)
    if not student_profile:
        raise NotFoundError("Student profile", session.student_id)

    async with _transaction(db):
        signed = await repository.sign_off_session(
            db, session_id, actual_duration_minutes, datetime.now(UTC)
        )
        if not signed:
            raise ConflictError("This session has already been signed off.")

        credited = await ProfileRepository.increment_hours(db, session.student_id, hours)
        if not credited:
            raise NotFoundError("Student profile", session.student_id)

        review = await repository.create_review(db, session=session, rating=rating, comment=comment)

        completed = await repository.update_status(
            db, request.id, SIGN_OFF_REQUEST_STATUSES, RequestStatus.COMPLETED
        )
        if not completed:
            raise ConflictError("The request changed during sign-off. Please refresh.")

    logger.info(
        f"Session {session_id} signed off by {actor.id}: {actual_duration_minutes} min, "
        f"rating {rating}, {hours:.2f}h credited to student {session.student_id}"
    )

    return SignOffResult(
        session=await _get_session_or_raise(db, session_id),
        review=review,
        request=await _get_request_or_raise(db, request.id),
        hours_added=hours,
    )


async def get_session_calendar(db: AsyncSession, actor: ActorContext, session_id: UUID) -> str:
    """iCalendar document for a session the actor takes part in."""
    session = await get_session(db, actor, session_id)
    return generate_ics(session)


# ============================================
# Messages
# ============================================


async def send_message(
    db: AsyncSession,
    actor: ActorContext,
    request_id: UUID,
    content: str,
) -> Message:
    """
    Send a chat message to the other participant of a claimed request.

    Raises:
        ValidationError: If the message is blank
        NotFoundError: If the request doesn't exist
        PermissionDeniedError: If the actor is not a participant
        ConflictError: If nobody has claimed the request yet
        RateLimitExceededError: If the actor is sending too quickly
    """
    content = content.strip()
    if not content:
        raise ValidationError("Message cannot be empty.")

    request = await _get_request_or_raise(db, request_id)

    if not is_participant(actor, request):
        raise PermissionDeniedError("Only the requester and the volunteer can message here.")

    if request.student_id is None:
        raise ConflictError("Messaging opens once a volunteer claims the request.", request.status.value)

    allowed = await check_rate_limit(
        f"messages:{actor.id}",
        settings.message_rate_limit,
        settings.message_rate_window_seconds,
    )
    if not allowed:
        logger.warning(f"Message rate limit exceeded for {actor.id}")
        raise RateLimitExceededError(settings.message_rate_window_seconds)

    receiver_id = request.student_id if actor.id == request.senior_id else request.senior_id

    async with _transaction(db):
        message = await repository.create_message(
            db,
            request_id=request_id,
            sender_id=actor.id,
            receiver_id=receiver_id,
            content=content,
        )

    logger.info(f"Message {message.id} sent on request {request_id}")

    receiver = await ProfileRepository.get_profile(db, receiver_id)
    if receiver and receiver.email:
        sender = await ProfileRepository.get_profile(db, actor.id)
        await _notify(
            f"new message email for request {request_id}",
            send_new_message(
                to_email=receiver.email,
                recipient_name=receiver.full_name,
                sender_name=sender.full_name if sender else (actor.name or "Your match"),
                request_title=request.title,
                request_id=str(request_id),
            ),
        )

    return message


async def list_messages(db: AsyncSession, actor: ActorContext, request_id: UUID) -> list[Message]:
    """Conversation of a request, visible to its participants and admins."""
    request = await _get_request_or_raise(db, request_id)

    if not (actor.is_admin or is_participant(actor, request)):
        raise PermissionDeniedError("Only the requester and the volunteer can read this chat.")

    return await repository.list_messages(db, request_id)


async def mark_messages_read(db: AsyncSession, actor: ActorContext, request_id: UUID) -> int:
    """Mark every unread message addressed to the actor on this request as read."""
    request = await _get_request_or_raise(db, request_id)

    if not is_participant(actor, request):
        raise PermissionDeniedError("Only the requester and the volunteer can read this chat.")

    async with _transaction(db):
        updated = await repository.mark_messages_read(db, request_id, actor.id)

    return updated
