"""
User Schemas

Pydantic schemas for profile and student verification endpoints.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from seniorhelp.modules.users.models import UserRole, VerificationStatus

MAX_SKILLS = 20


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: UserRole
    full_name: str
    email: str | None
    phone: str | None
    created_at: datetime


class StudentProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    school_name: str
    skills: list[str]
    verification_status: VerificationStatus
    total_hours: float


class MeResponse(BaseModel):
    """The caller's profile, plus the student record for students."""

    profile: ProfileResponse
    student_profile: StudentProfileResponse | None = None


class SkillsUpdate(BaseModel):
    """Request body for PUT /users/me/skills."""

    skills: list[str] = Field(..., max_length=MAX_SKILLS)

    @field_validator("skills")
    @classmethod
    def normalize_skills(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for skill in value:
            skill = skill.strip()
            if skill and skill not in seen:
                seen.append(skill)
        return seen


class PendingStudentItem(BaseModel):
    """A student awaiting verification, with their uploaded documents."""

    id: UUID
    full_name: str
    email: str | None
    school_name: str
    school_id_url: str | None
    parent_consent_url: str | None
    verification_status: VerificationStatus
    submitted_at: datetime


class PendingStudentListResponse(BaseModel):
    students: list[PendingStudentItem]
    skip: int
    limit: int


class VerificationDecisionResponse(BaseModel):
    student_id: UUID
    verification_status: VerificationStatus
    message: str
