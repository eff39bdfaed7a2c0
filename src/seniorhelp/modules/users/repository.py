"""
Profile Repository

Database operations for profiles and student verification records.
Methods flush but never commit; the calling service owns the transaction.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from seniorhelp.modules.users.models import Profile, StudentProfile, VerificationStatus

logger = logging.getLogger(__name__)


class ProfileRepository:
    """Repository for profile database operations."""

    @staticmethod
    async def get_profile(db: AsyncSession, profile_id: UUID) -> Profile | None:
        """Get a profile by ID."""
        return await db.get(Profile, profile_id)

    @staticmethod
    async def get_student_profile(
        db: AsyncSession,
        student_id: UUID,
        *,
        refresh: bool = False,
    ) -> StudentProfile | None:
        """
        Get a student's verification record.

        Args:
            db: Database session
            student_id: Student profile UUID
            refresh: Reload from the database even if the row is already
                in the session identity map

        Returns:
            StudentProfile or None if the student has no record
        """
        return await db.get(StudentProfile, student_id, populate_existing=refresh)

    @staticmethod
    async def list_students_by_status(
        db: AsyncSession,
        status: VerificationStatus,
        *,
        skip: int = 0,
        limit: int = 20,
    ) -> list[tuple[Profile, StudentProfile]]:
        """List students with the given verification status, oldest first."""
        result = await db.execute(
            select(Profile, StudentProfile)
            .join(StudentProfile, StudentProfile.id == Profile.id)
            .where(StudentProfile.verification_status == status)
            .order_by(StudentProfile.created_at.asc())
            .offset(skip)
            .limit(limit)
        )
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    async def set_verification_status(
        db: AsyncSession,
        student_id: UUID,
        status: VerificationStatus,
    ) -> StudentProfile | None:
        """
        Approve or reject a student.

        Returns:
            The updated StudentProfile, or None if not found
        """
        profile = await db.get(StudentProfile, student_id)
        if not profile:
            return None

        profile.verification_status = status
        await db.flush()

        logger.info(f"Student {student_id} verification status set to {status.value}")
        return profile

    @staticmethod
    async def increment_hours(db: AsyncSession, student_id: UUID, delta: float) -> bool:
        """
        Add volunteer hours to a student's ledger.

        Issued as ``total_hours = total_hours + delta`` so concurrent
        increments cannot overwrite each other.

        Args:
            db: Database session
            student_id: Student profile UUID
            delta: Hours to add (must be positive)

        Returns:
            True if a row was updated, False if the student has no record
        """
        if delta <= 0:
            raise ValueError(f"Hour increment must be positive, got {delta}")

        result = await db.execute(
            update(StudentProfile)
            .where(StudentProfile.id == student_id)
            .values(total_hours=StudentProfile.total_hours + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def update_skills(
        db: AsyncSession,
        student_id: UUID,
        skills: list[str],
    ) -> StudentProfile | None:
        """Replace a student's skill tags."""
        profile = await db.get(StudentProfile, student_id)
        if not profile:
            return None

        profile.skills = skills
        await db.flush()
        return profile
