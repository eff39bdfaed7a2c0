"""create profiles, help request, session, review and message tables

Revision ID: 3f9a1c2d7e41
Revises:
Create Date: 2026-10-17 09:00:00.000000

This migration:
1. Creates profiles and student_profiles (verification state, hour ledger)
2. Creates help_requests with the request lifecycle status
3. Creates sessions, reviews (one per session) and messages

Enum columns store their lowercase values ("open", "in_progress", ...).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2d7e41"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

USER_ROLE = sa.Enum("senior", "student", "admin", name="user_role")
VERIFICATION_STATUS = sa.Enum("pending", "approved", "rejected", name="verification_status")
REQUEST_URGENCY = sa.Enum("low", "medium", "high", "urgent", name="request_urgency")
REQUEST_STATUS = sa.Enum(
    "open",
    "claimed",
    "scheduled",
    "in_progress",
    "completed",
    "cancelled",
    name="request_status",
)
SESSION_STATUS = sa.Enum(
    "scheduled", "in_progress", "completed", "cancelled", name="session_status"
)


def _audit_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables for the help request workflow."""
    op.create_table(
        "profiles",
        *_audit_columns(),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_profiles_role", "profiles", ["role"])

    op.create_table(
        "student_profiles",
        *_audit_columns(),
        sa.Column("school_name", sa.String(length=200), nullable=False),
        sa.Column("skills", sa.JSON(), nullable=False),
        sa.Column("verification_status", VERIFICATION_STATUS, nullable=False),
        sa.Column("school_id_url", sa.Text(), nullable=True),
        sa.Column("parent_consent_url", sa.Text(), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_student_profiles_verification_status", "student_profiles", ["verification_status"]
    )

    op.create_table(
        "help_requests",
        *_audit_columns(),
        sa.Column("senior_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("urgency", REQUEST_URGENCY, nullable=False),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("is_physical_task", sa.Boolean(), nullable=False),
        sa.Column("status", REQUEST_STATUS, nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["senior_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_help_requests_status", "help_requests", ["status"])
    op.create_index("ix_help_requests_senior_id", "help_requests", ["senior_id"])
    op.create_index("ix_help_requests_student_id", "help_requests", ["student_id"])

    op.create_table(
        "sessions",
        *_audit_columns(),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("senior_id", sa.Uuid(), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("actual_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("meeting_link", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", SESSION_STATUS, nullable=False),
        sa.Column("senior_signed_off", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["request_id"], ["help_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["senior_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sessions_request_id", "sessions", ["request_id"])
    op.create_index(
        "ix_sessions_status_scheduled_time", "sessions", ["status", "scheduled_time"]
    )

    op.create_table(
        "reviews",
        *_audit_columns(),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("reviewer_id", sa.Uuid(), nullable=False),
        sa.Column("reviewee_id", sa.Uuid(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewer_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewee_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", name="uq_reviews_session_id"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_reviewee_id", "reviews", ["reviewee_id"])

    op.create_table(
        "messages",
        *_audit_columns(),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Uuid(), nullable=False),
        sa.Column("receiver_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["request_id"], ["help_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["receiver_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_messages_request_id_created_at", "messages", ["request_id", "created_at"]
    )
    op.create_index("ix_messages_receiver_id_read", "messages", ["receiver_id", "read"])


def downgrade() -> None:
    """Drop all help request tables and enum types."""
    op.drop_table("messages")
    op.drop_table("reviews")
    op.drop_table("sessions")
    op.drop_table("help_requests")
    op.drop_table("student_profiles")
    op.drop_table("profiles")

    bind = op.get_bind()
    for enum_type in (
        SESSION_STATUS,
        REQUEST_STATUS,
        REQUEST_URGENCY,
        VERIFICATION_STATUS,
        USER_ROLE,
    ):
        enum_type.drop(bind, checkfirst=True)
