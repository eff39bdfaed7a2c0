"""
Shared model building blocks.

Every table gets a UUID primary key plus created/updated audit timestamps.
Column types are portable (Uuid, JSON, value-stored Enum) so the same models
run on Postgres in production and SQLite in tests.
"""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from seniorhelp.core.database import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


def value_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Enum column type that stores member values ("open"), not names ("OPEN")."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class BaseModel(Base):
    """Abstract base with id and audit timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["BaseModel", "utcnow", "value_enum"]
