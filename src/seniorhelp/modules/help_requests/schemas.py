"""
Help Request Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Re-use enums from models (they work with Pydantic too!)
from seniorhelp.modules.help_requests.models import RequestStatus, SessionStatus, Urgency

REQUEST_CATEGORIES = [
    "Social Media",
    "Email",
    "Video Calls",
    "Smartphone Setup",
    "Computer Basics",
    "Online Shopping",
    "Banking Apps",
    "Health Apps",
    "Other",
]

MAX_TAGS = 10
MAX_SESSION_MINUTES = 480


# ============================================
# Help Requests
# ============================================


class HelpRequestCreate(BaseModel):
    """Request body for POST /requests."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    category: str
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    urgency: Urgency = Urgency.MEDIUM
    estimated_duration_minutes: int | None = Field(None, gt=0, le=MAX_SESSION_MINUTES)
    is_physical_task: bool = False

    @field_validator("title", "description")
    @classmethod
    def strip_required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        if value not in REQUEST_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(REQUEST_CATEGORIES)}")
        return value

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        """Tags are a set: strip, lowercase, drop blanks and duplicates, keep order."""
        seen: list[str] = []
        for tag in value:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class HelpRequestResponse(BaseModel):
    """A help request as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    senior_id: UUID
    student_id: UUID | None
    title: str
    description: str
    category: str
    tags: list[str]
    urgency: Urgency
    estimated_duration_minutes: int | None
    is_physical_task: bool
    status: RequestStatus
    claimed_at: datetime | None
    created_at: datetime


class HelpRequestListResponse(BaseModel):
    """Paginated list of help requests."""

    requests: list[HelpRequestResponse]
    total: int
    skip: int
    limit: int


class CancelRequestBody(BaseModel):
    """Optional reason sent with a cancellation."""

    reason: str | None = Field(None, max_length=500)


# ============================================
# Sessions
# ============================================


class SessionCreate(BaseModel):
    """Request body for POST /sessions (claimant schedules a session)."""

    request_id: UUID
    scheduled_time: datetime
    duration_minutes: int = Field(30, gt=0, le=MAX_SESSION_MINUTES)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class SessionResponse(BaseModel):
    """A session as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    student_id: UUID
    senior_id: UUID
    scheduled_time: datetime
    duration_minutes: int
    actual_duration_minutes: int | None
    meeting_link: str | None
    notes: str | None
    status: SessionStatus
    senior_signed_off: bool
    completed_at: datetime | None
    created_at: datetime


class SignOffRequest(BaseModel):
    """Request body for POST /sessions/{id}/sign-off."""

    actual_duration_minutes: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    """A review written at sign-off."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    reviewer_id: UUID
    reviewee_id: UUID
    rating: int
    comment: str | None
    created_at: datetime


class SignOffResponse(BaseModel):
    """Result of a successful sign-off."""

    session: SessionResponse
    review: ReviewResponse
    request_status: RequestStatus
    hours_added: float


# ============================================
# Messages
# ============================================


class MessageCreate(BaseModel):
    """Request body for POST /requests/{id}/messages."""

    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class MessageResponse(BaseModel):
    """A chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    read: bool
    created_at: datetime


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]


class MarkReadResponse(BaseModel):
    updated: int
