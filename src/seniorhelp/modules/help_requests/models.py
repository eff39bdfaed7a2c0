"""
Help Request Models

Database models for help requests, the sessions scheduled for them, the
reviews written at sign-off and the chat messages exchanged between the
requesting senior and the claiming student.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from seniorhelp.modules.shared import BaseModel, value_enum


class RequestStatus(str, enum.Enum):
    """Lifecycle status of a help request."""

    OPEN = "open"
    CLAIMED = "claimed"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionStatus(str, enum.Enum):
    """Status of a scheduled help session."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Urgency(str, enum.Enum):
    """How soon the senior needs help."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class HelpRequest(BaseModel):
    """
    A senior's request for technology help.

    student_id stays NULL while the request is open and is set exactly once,
    by the claim.
    """

    __tablename__ = "help_requests"

    senior_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    urgency: Mapped[Urgency] = mapped_column(
        value_enum(Urgency, "request_urgency"), nullable=False, default=Urgency.MEDIUM
    )
    estimated_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_physical_task: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[RequestStatus] = mapped_column(
        value_enum(RequestStatus, "request_status"),
        nullable=False,
        default=RequestStatus.OPEN,
    )
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_help_requests_status", "status"),
        Index("ix_help_requests_senior_id", "senior_id"),
        Index("ix_help_requests_student_id", "student_id"),
    )

    def __repr__(self) -> str:
        return f"<HelpRequest(id={self.id}, status={self.status.value})>"


class HelpSession(BaseModel):
    """
    A scheduled meeting between the claimant and the requester.

    The student/senior pair is copied from the parent request when the
    session is created. actual_duration_minutes, completed_at and
    senior_signed_off are only written by the sign-off.
    """

    __tablename__ = "sessions"

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("help_requests.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    senior_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )

    scheduled_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    actual_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    meeting_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[SessionStatus] = mapped_column(
        value_enum(SessionStatus, "session_status"),
        nullable=False,
        default=SessionStatus.SCHEDULED,
    )
    senior_signed_off: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Reminder tracking
    reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_sessions_request_id", "request_id"),
        Index("ix_sessions_status_scheduled_time", "status", "scheduled_time"),
    )

    def __repr__(self) -> str:
        return f"<HelpSession(id={self.id}, status={self.status.value})>"


class Review(BaseModel):
    """The senior's rating of the student, written once per signed-off session."""

    __tablename__ = "reviews"

    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    reviewee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("session_id", name="uq_reviews_session_id"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_reviewee_id", "reviewee_id"),
    )


class Message(BaseModel):
    """A chat message exchanged about a claimed request."""

    __tablename__ = "messages"

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("help_requests.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_messages_request_id_created_at", "request_id", "created_at"),
        Index("ix_messages_receiver_id_read", "receiver_id", "read"),
    )
