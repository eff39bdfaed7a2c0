"""
Student Verification Admin Router

API endpoints for admins to review student volunteers.
All endpoints require the admin role.

Endpoints:
- GET /admin/students - List students by verification status (pending by default)
- POST /admin/students/{id}/approve - Approve a student
- POST /admin/students/{id}/reject - Reject a student
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from seniorhelp.core.auth import ActorContext, get_current_admin
from seniorhelp.core.database import get_db
from seniorhelp.modules.shared.errors import ServiceError
from seniorhelp.modules.users import service
from seniorhelp.modules.users.models import VerificationStatus
from seniorhelp.modules.users.schemas import (
    PendingStudentItem,
    PendingStudentListResponse,
    VerificationDecisionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: ServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


@router.get("", response_model=PendingStudentListResponse)
async def list_students(
    status_filter: VerificationStatus = Query(VerificationStatus.PENDING, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    admin: ActorContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> PendingStudentListResponse:
    rows = await service.admin_list_students(db, status_filter, skip=skip, limit=limit)

    return PendingStudentListResponse(
        students=[
            PendingStudentItem(
                id=profile.id,
                full_name=profile.full_name,
                email=profile.email,
                school_name=student.school_name,
                school_id_url=student.school_id_url,
                parent_consent_url=student.parent_consent_url,
                verification_status=student.verification_status,
                submitted_at=student.created_at,
            )
            for profile, student in rows
        ],
        skip=skip,
        limit=limit,
    )


@router.post("/{student_id}/approve", response_model=VerificationDecisionResponse)
async def approve_student(
    student_id: UUID,
    admin: ActorContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> VerificationDecisionResponse:
    try:
        student = await service.admin_approve_student(db, admin, student_id)
    except ServiceError as e:
        _handle_service_error(e)

    logger.info(f"Admin {admin.id} approved student {student_id}")
    return VerificationDecisionResponse(
        student_id=student.id,
        verification_status=student.verification_status,
        message="Student approved. They can now claim help requests.",
    )


@router.post("/{student_id}/reject", response_model=VerificationDecisionResponse)
async def reject_student(
    student_id: UUID,
    admin: ActorContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> VerificationDecisionResponse:
    try:
        student = await service.admin_reject_student(db, admin, student_id)
    except ServiceError as e:
        _handle_service_error(e)

    logger.info(f"Admin {admin.id} rejected student {student_id}")
    return VerificationDecisionResponse(
        student_id=student.id,
        verification_status=student.verification_status,
        message="Student rejected.",
    )
