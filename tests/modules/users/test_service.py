"""
Unit tests for the users service: profile lookup, skills and admin verification.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from seniorhelp.core.auth import ActorContext
from seniorhelp.modules.shared.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from seniorhelp.modules.users import service
from seniorhelp.modules.users.models import StudentProfile, UserRole, VerificationStatus

REPO = "seniorhelp.modules.users.service.ProfileRepository"


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def admin():
    return ActorContext(id=uuid4(), role=UserRole.ADMIN)


@pytest.fixture
def student():
    return ActorContext(id=uuid4(), role=UserRole.STUDENT)


def _student_profile(student_id, status=VerificationStatus.PENDING):
    profile = MagicMock(spec=StudentProfile)
    profile.id = student_id
    profile.verification_status = status
    return profile


class TestGetMe:
    @pytest.mark.asyncio
    async def test_student_gets_verification_record(self, mock_db, student):
        profile = MagicMock()
        record = _student_profile(student.id)

        with patch(REPO) as repo:
            repo.get_profile = AsyncMock(return_value=profile)
            repo.get_student_profile = AsyncMock(return_value=record)

            result = await service.get_me(mock_db, student)

        assert result == (profile, record)

    @pytest.mark.asyncio
    async def test_senior_has_no_student_record(self, mock_db):
        senior = ActorContext(id=uuid4(), role=UserRole.SENIOR)

        with patch(REPO) as repo:
            repo.get_profile = AsyncMock(return_value=MagicMock())
            repo.get_student_profile = AsyncMock()

            _, record = await service.get_me(mock_db, senior)

        assert record is None
        repo.get_student_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_profile(self, mock_db, student):
        with patch(REPO) as repo:
            repo.get_profile = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await service.get_me(mock_db, student)


class TestUpdateSkills:
    @pytest.mark.asyncio
    async def test_student_updates_skills(self, mock_db, student):
        record = _student_profile(student.id)

        with patch(REPO) as repo:
            repo.update_skills = AsyncMock(return_value=record)

            result = await service.update_my_skills(mock_db, student, ["email", "zoom"])

        assert result is record
        repo.update_skills.assert_awaited_once_with(mock_db, student.id, ["email", "zoom"])
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_student_denied(self, mock_db, admin):
        with pytest.raises(PermissionDeniedError):
            await service.update_my_skills(mock_db, admin, ["email"])

    @pytest.mark.asyncio
    async def test_missing_record_rolls_back(self, mock_db, student):
        with patch(REPO) as repo:
            repo.update_skills = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await service.update_my_skills(mock_db, student, ["email"])

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_called()


class TestAdminVerification:
    @pytest.mark.asyncio
    async def test_approve_pending_student(self, mock_db, admin):
        student_id = uuid4()
        pending = _student_profile(student_id)
        approved = _student_profile(student_id, VerificationStatus.APPROVED)

        with patch(REPO) as repo:
            repo.get_student_profile = AsyncMock(return_value=pending)
            repo.set_verification_status = AsyncMock(return_value=approved)

            result = await service.admin_approve_student(mock_db, admin, student_id)

        assert result.verification_status == VerificationStatus.APPROVED
        repo.set_verification_status.assert_awaited_once_with(
            mock_db, student_id, VerificationStatus.APPROVED
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reject_pending_student(self, mock_db, admin):
        student_id = uuid4()

        with patch(REPO) as repo:
            repo.get_student_profile = AsyncMock(return_value=_student_profile(student_id))
            repo.set_verification_status = AsyncMock(
                return_value=_student_profile(student_id, VerificationStatus.REJECTED)
            )

            result = await service.admin_reject_student(mock_db, admin, student_id)

        assert result.verification_status == VerificationStatus.REJECTED

    @pytest.mark.asyncio
    async def test_approving_twice_conflicts(self, mock_db, admin):
        student_id = uuid4()

        with patch(REPO) as repo:
            repo.get_student_profile = AsyncMock(
                return_value=_student_profile(student_id, VerificationStatus.APPROVED)
            )
            repo.set_verification_status = AsyncMock()

            with pytest.raises(ConflictError):
                await service.admin_approve_student(mock_db, admin, student_id)

        repo.set_verification_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_student(self, mock_db, admin):
        with patch(REPO) as repo:
            repo.get_student_profile = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await service.admin_approve_student(mock_db, admin, uuid4())

    @pytest.mark.asyncio
    async def test_non_admin_denied(self, mock_db, student):
        with patch(REPO) as repo:
            repo.get_student_profile = AsyncMock()

            with pytest.raises(PermissionDeniedError):
                await service.admin_approve_student(mock_db, student, uuid4())

        repo.get_student_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_clamps_limit(self, mock_db):
        with patch(REPO) as repo:
            repo.list_students_by_status = AsyncMock(return_value=[])

            await service.admin_list_students(mock_db, limit=500)

        repo.list_students_by_status.assert_awaited_once_with(
            mock_db, VerificationStatus.PENDING, skip=0, limit=100
        )
