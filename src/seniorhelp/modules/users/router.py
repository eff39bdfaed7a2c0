"""
Users Router

- GET /users/me - The caller's profile (and student record)
- PUT /users/me/skills - Student replaces their skill tags
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from seniorhelp.core.auth import ActorContext, get_current_actor
from seniorhelp.core.database import get_db
from seniorhelp.modules.shared.errors import ServiceError
from seniorhelp.modules.users import service
from seniorhelp.modules.users.schemas import (
    MeResponse,
    ProfileResponse,
    SkillsUpdate,
    StudentProfileResponse,
)

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


@router.get("/me", response_model=MeResponse)
async def get_me(
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    try:
        profile, student_profile = await service.get_me(db, actor)
    except ServiceError as e:
        _handle_service_error(e)

    return MeResponse(
        profile=ProfileResponse.model_validate(profile),
        student_profile=(
            StudentProfileResponse.model_validate(student_profile) if student_profile else None
        ),
    )


@router.put("/me/skills", response_model=StudentProfileResponse)
async def update_my_skills(
    data: SkillsUpdate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> StudentProfileResponse:
    try:
        profile = await service.update_my_skills(db, actor, data.skills)
    except ServiceError as e:
        _handle_service_error(e)

    return StudentProfileResponse.model_validate(profile)
