"""
User Models

Profiles mirror the identities issued by the external auth provider: the
profile id is the provider's user id. Students carry an extra profile row
holding their verification state and accrued volunteer hours.
"""

import uuid
from enum import Enum

from sqlalchemy import JSON, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from seniorhelp.modules.shared import BaseModel, value_enum


class UserRole(str, Enum):
    """User roles in the system."""

    SENIOR = "senior"
    STUDENT = "student"
    ADMIN = "admin"


class VerificationStatus(str, Enum):
    """Admin-gated verification state of a student volunteer."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Profile(BaseModel):
    """Core identity row for seniors, students and admins."""

    __tablename__ = "profiles"

    role: Mapped[UserRole] = mapped_column(value_enum(UserRole, "user_role"), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (Index("ix_profiles_role", "role"),)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role={self.role.value})>"


class StudentProfile(BaseModel):
    """
    Verification record and hour ledger for a student volunteer.

    total_hours only ever grows, and only when a senior signs off a session.
    """

    __tablename__ = "student_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    school_name: Mapped[str] = mapped_column(String(200), nullable=False)
    skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        value_enum(VerificationStatus, "verification_status"),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    school_id_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_consent_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_student_profiles_verification_status", "verification_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<StudentProfile(id={self.id}, status={self.verification_status.value}, "
            f"hours={self.total_hours})>"
        )
