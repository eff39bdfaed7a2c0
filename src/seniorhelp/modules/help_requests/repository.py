"""
Help Requests Repository

Database operations for help requests, sessions, reviews and messages.

Design Principles:
- Only database operations, no business rules beyond the state machine
- Functions flush but never commit; the service decides the transaction
- Status changes are conditional UPDATEs (compare-and-set): they report
  whether a row actually changed, and a zero-row result means another
  writer got there first
- Timezone-aware datetime handling (UTC)
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .lifecycle import (
    ACTIVE_SESSION_STATUSES,
    SIGN_OFF_SESSION_STATUSES,
    ensure_session_transition,
    ensure_transition,
)
from .models import (
    HelpRequest,
    HelpSession,
    Message,
    RequestStatus,
    Review,
    SessionStatus,
    Urgency,
)
from .schemas import HelpRequestCreate

# ============================================
# HelpRequest Repository
# ============================================


async def create_request(db: AsyncSession, senior_id: UUID, data: HelpRequestCreate) -> HelpRequest:
    """Create a new open help request."""

    new_request = HelpRequest(
        senior_id=senior_id,
        student_id=None,
        title=data.title,
        description=data.description,
        category=data.category,
        tags=list(data.tags),
        urgency=data.urgency,
        estimated_duration_minutes=data.estimated_duration_minutes,
        is_physical_task=data.is_physical_task,
        status=RequestStatus.OPEN,
    )

    db.add(new_request)
    await db.flush()

    return new_request


async def get_by_id(db: AsyncSession, id: UUID, *, refresh: bool = False) -> HelpRequest | None:
    """
    Get request by ID.

    Pass refresh=True after a conditional update so the identity map does
    not hand back stale values.
    """
    return await db.get(HelpRequest, id, populate_existing=refresh)


async def list_open_requests(
    db: AsyncSession,
    *,
    category: str | None = None,
    urgency: Urgency | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[HelpRequest], int]:
    """List open requests, newest first, with optional filters."""
    conditions = [HelpRequest.status == RequestStatus.OPEN]
    if category:
        conditions.append(HelpRequest.category == category)
    if urgency:
        conditions.append(HelpRequest.urgency == urgency)

    total = await db.scalar(select(func.count()).select_from(HelpRequest).where(*conditions))
    result = await db.execute(
        select(HelpRequest)
        .where(*conditions)
        .order_by(HelpRequest.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def list_for_participant(
    db: AsyncSession,
    participant_id: UUID,
    *,
    status: RequestStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[HelpRequest], int]:
    """List requests the profile created (senior) or claimed (student)."""
    conditions = [
        or_(HelpRequest.senior_id == participant_id, HelpRequest.student_id == participant_id)
    ]
    if status:
        conditions.append(HelpRequest.status == status)

    total = await db.scalar(select(func.count()).select_from(HelpRequest).where(*conditions))
    result = await db.execute(
        select(HelpRequest)
        .where(*conditions)
        .order_by(HelpRequest.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def claim(
    db: AsyncSession,
    request_id: UUID,
    student_id: UUID,
    claimed_at: datetime | None = None,
) -> bool:
    """
    Attach a student to an open request.

    Succeeds only while the request is still open and unclaimed, so two
    concurrent claims cannot both win.

    Returns:
        True if this call claimed the request, False if it was already taken
    """
    ensure_transition(RequestStatus.OPEN, RequestStatus.CLAIMED)

    result = await db.execute(
        update(HelpRequest)
        .where(
            HelpRequest.id == request_id,
            HelpRequest.status == RequestStatus.OPEN,
            HelpRequest.student_id.is_(None),
        )
        .values(
            student_id=student_id,
            status=RequestStatus.CLAIMED,
            claimed_at=claimed_at or datetime.now(UTC),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def update_status(
    db: AsyncSession,
    id: UUID,
    from_statuses: Iterable[RequestStatus],
    status: RequestStatus,
    **conditions,
) -> bool:
    """
    Move a request to a new status if it is currently in one of from_statuses.

    Every from -> to pair is checked against the state machine before the
    UPDATE is issued.

    Args:
        db: Database session
        id: Request UUID
        from_statuses: Statuses the request must currently have
        status: New status
        **conditions: Extra column equality guards (e.g. student_id=...)

    Returns:
        True if the row changed, False if the guard did not match

    Raises:
        InvalidStatusTransitionError: If any from -> to pair is not allowed
    """
    from_statuses = list(from_statuses)
    for current in from_statuses:
        ensure_transition(current, status)

    stmt = update(HelpRequest).where(
        HelpRequest.id == id,
        HelpRequest.status.in_(from_statuses),
    )
    for key, value in conditions.items():
        stmt = stmt.where(getattr(HelpRequest, key) == value)

    result = await db.execute(
        stmt.values(status=status).execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# ============================================
# Session Repository
# ============================================


async def create_session(
    db: AsyncSession,
    *,
    request: HelpRequest,
    scheduled_time: datetime,
    duration_minutes: int,
    meeting_link: str | None,
    notes: str | None,
) -> HelpSession:
    """Create a scheduled session; the student/senior pair comes from the request."""

    new_session = HelpSession(
        request_id=request.id,
        student_id=request.student_id,
        senior_id=request.senior_id,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes,
        meeting_link=meeting_link,
        notes=notes,
        status=SessionStatus.SCHEDULED,
        senior_signed_off=False,
    )

    db.add(new_session)
    await db.flush()

    return new_session


async def get_session(db: AsyncSession, id: UUID, *, refresh: bool = False) -> HelpSession | None:
    """Get session by ID."""
    return await db.get(HelpSession, id, populate_existing=refresh)


async def list_sessions_for_participant(
    db: AsyncSession,
    participant_id: UUID,
    *,
    status: SessionStatus | None = None,
) -> list[HelpSession]:
    """List sessions the profile takes part in, soonest first."""
    stmt = select(HelpSession).where(
        or_(HelpSession.student_id == participant_id, HelpSession.senior_id == participant_id)
    )
    if status:
        stmt = stmt.where(HelpSession.status == status)

    result = await db.execute(stmt.order_by(HelpSession.scheduled_time.asc()))
    return list(result.scalars().all())


async def update_session_status(
    db: AsyncSession,
    id: UUID,
    from_statuses: Iterable[SessionStatus],
    status: SessionStatus,
) -> bool:
    """Conditional session status change. Same contract as update_status."""
    from_statuses = list(from_statuses)
    for current in from_statuses:
        ensure_session_transition(current, status)

    result = await db.execute(
        update(HelpSession)
        .where(HelpSession.id == id, HelpSession.status.in_(from_statuses))
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def sign_off_session(
    db: AsyncSession,
    id: UUID,
    actual_duration_minutes: int,
    completed_at: datetime | None = None,
) -> bool:
    """
    Record the senior's sign-off on a session.

    Guarded by senior_signed_off = false, so a repeated or concurrent
    sign-off changes nothing and returns False.

    Returns:
        True if this call signed the session off
    """
    result = await db.execute(
        update(HelpSession)
        .where(
            HelpSession.id == id,
            HelpSession.senior_signed_off.is_(False),
            HelpSession.status.in_(list(SIGN_OFF_SESSION_STATUSES)),
        )
        .values(
            actual_duration_minutes=actual_duration_minutes,
            senior_signed_off=True,
            status=SessionStatus.COMPLETED,
            completed_at=completed_at or datetime.now(UTC),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def cancel_active_sessions(db: AsyncSession, request_id: UUID) -> int:
    """Cancel every not-yet-finished session of a request. Returns the count."""
    result = await db.execute(
        update(HelpSession)
        .where(
            HelpSession.request_id == request_id,
            HelpSession.status.in_(list(ACTIVE_SESSION_STATUSES)),
        )
        .values(status=SessionStatus.CANCELLED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ============================================
# Review Repository
# ============================================


async def create_review(
    db: AsyncSession,
    *,
    session: HelpSession,
    rating: int,
    comment: str | None,
) -> Review:
    """Insert the senior's review of the student for a session."""

    review = Review(
        session_id=session.id,
        reviewer_id=session.senior_id,
        reviewee_id=session.student_id,
        rating=rating,
        comment=comment,
    )

    db.add(review)
    await db.flush()

    return review


# ============================================
# Message Repository
# ============================================


async def create_message(
    db: AsyncSession,
    *,
    request_id: UUID,
    sender_id: UUID,
    receiver_id: UUID,
    content: str,
) -> Message:
    """Store a chat message."""

    message = Message(
        request_id=request_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        read=False,
    )

    db.add(message)
    await db.flush()

    return message


async def list_messages(db: AsyncSession, request_id: UUID) -> list[Message]:
    """All messages of a request, oldest first."""
    result = await db.execute(
        select(Message).where(Message.request_id == request_id).order_by(Message.created_at.asc())
    )
    return list(result.scalars().all())


async def mark_messages_read(db: AsyncSession, request_id: UUID, receiver_id: UUID) -> int:
    """Mark the receiver's unread messages on a request as read. Returns the count."""
    result = await db.execute(
        update(Message)
        .where(
            Message.request_id == request_id,
            Message.receiver_id == receiver_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ============================================
# Background Job Repository Methods
# ============================================


async def get_sessions_needing_reminder(
    db: AsyncSession,
    starts_after: datetime,
    starts_before: datetime,
) -> list[HelpSession]:
    """
    Get scheduled sessions starting inside the window that have no reminder yet.

    Idempotent: once reminder_sent_at is stamped a session is not returned again.
    """
    result = await db.execute(
        select(HelpSession).where(
            HelpSession.status == SessionStatus.SCHEDULED,
            HelpSession.scheduled_time > starts_after,
            HelpSession.scheduled_time <= starts_before,
            HelpSession.reminder_sent_at.is_(None),
        )
    )
    return list(result.scalars().all())


async def mark_reminder_sent(
    db: AsyncSession,
    session_id: UUID,
    sent_at: datetime | None = None,
) -> bool:
    """Stamp reminder_sent_at so the reminder job skips the session next time."""
    result = await db.execute(
        update(HelpSession)
        .where(HelpSession.id == session_id)
        .values(reminder_sent_at=sent_at or datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
