"""
Users Service Layer

Profile lookups and the admin-gated student verification workflow.
A student may only claim requests once an admin has approved them.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from seniorhelp.core.auth import ActorContext
from seniorhelp.modules.shared.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from seniorhelp.modules.users.models import Profile, StudentProfile, VerificationStatus
from seniorhelp.modules.users.repository import ProfileRepository

logger = logging.getLogger(__name__)


async def get_me(
    db: AsyncSession,
    actor: ActorContext,
) -> tuple[Profile, StudentProfile | None]:
    """
    Get the caller's profile.

    Returns:
        (profile, student_profile); student_profile is None for non-students

    Raises:
        NotFoundError: If the caller has no profile row yet
    """
    profile = await ProfileRepository.get_profile(db, actor.id)
    if not profile:
        raise NotFoundError("Profile", actor.id)

    student_profile = None
    if actor.is_student:
        student_profile = await ProfileRepository.get_student_profile(db, actor.id, refresh=True)

    return profile, student_profile


async def update_my_skills(
    db: AsyncSession,
    actor: ActorContext,
    skills: list[str],
) -> StudentProfile:
    """Replace the calling student's skill tags."""
    if not actor.is_student:
        raise PermissionDeniedError("Only students have skills to update.")

    try:
        profile = await ProfileRepository.update_skills(db, actor.id, skills)
        if not profile:
            raise NotFoundError("Student profile", actor.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Student {actor.id} updated skills ({len(skills)} skills)")
    return profile


async def admin_list_students(
    db: AsyncSession,
    status: VerificationStatus = VerificationStatus.PENDING,
    skip: int = 0,
    limit: int = 20,
) -> list[tuple[Profile, StudentProfile]]:
    """List students by verification status (pending by default), oldest first."""
    limit = min(max(1, limit), 100)
    return await ProfileRepository.list_students_by_status(db, status, skip=skip, limit=limit)


async def _admin_decide(
    db: AsyncSession,
    admin: ActorContext,
    student_id: UUID,
    decision: VerificationStatus,
) -> StudentProfile:
    if not admin.is_admin:
        raise PermissionDeniedError("Admin access is required.")

    logger.info(f"Admin {admin.id} setting student {student_id} to {decision.value}")

    profile = await ProfileRepository.get_student_profile(db, student_id, refresh=True)
    if not profile:
        logger.warning(f"Student profile not found: {student_id}")
        raise NotFoundError("Student profile", student_id)

    if profile.verification_status == decision:
        raise ConflictError(
            f"Student is already {decision.value}.", profile.verification_status.value
        )

    try:
        updated = await ProfileRepository.set_verification_status(db, student_id, decision)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return updated


async def admin_approve_student(
    db: AsyncSession,
    admin: ActorContext,
    student_id: UUID,
) -> StudentProfile:
    """
    Approve a student so they can claim requests.

    Raises:
        NotFoundError: If the student has no verification record
        ConflictError: If the student is already approved
    """
    return await _admin_decide(db, admin, student_id, VerificationStatus.APPROVED)


async def admin_reject_student(
    db: AsyncSession,
    admin: ActorContext,
    student_id: UUID,
) -> StudentProfile:
    """
    Reject a student. A rejected student keeps browsing but cannot claim.

    Raises:
        NotFoundError: If the student has no verification record
        ConflictError: If the student is already rejected
    """
    return await _admin_decide(db, admin, student_id, VerificationStatus.REJECTED)
