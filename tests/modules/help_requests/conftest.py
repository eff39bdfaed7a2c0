"""
Fixtures for help requests tests.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from seniorhelp.core.auth import ActorContext
from seniorhelp.core.database import Base
from seniorhelp.modules.help_requests.models import (
    HelpRequest,
    HelpSession,
    RequestStatus,
    SessionStatus,
    Urgency,
)
from seniorhelp.modules.users.models import (
    Profile,
    StudentProfile,
    UserRole,
    VerificationStatus,
)


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


# ============================================
# Actors
# ============================================


@pytest.fixture
def senior_actor():
    return ActorContext(id=uuid4(), role=UserRole.SENIOR, name="Margaret")


@pytest.fixture
def student_actor():
    return ActorContext(id=uuid4(), role=UserRole.STUDENT, name="Sam")


@pytest.fixture
def other_student_actor():
    return ActorContext(id=uuid4(), role=UserRole.STUDENT, name="Alex")


@pytest.fixture
def admin_actor():
    return ActorContext(id=uuid4(), role=UserRole.ADMIN, name="Admin")


# ============================================
# Model stand-ins for unit tests
# ============================================


def make_student_profile(student_id, status=VerificationStatus.APPROVED, hours=0.0):
    profile = MagicMock(spec=StudentProfile)
    profile.id = student_id
    profile.verification_status = status
    profile.total_hours = hours
    return profile


def make_profile(profile_id, role, name, email):
    profile = MagicMock(spec=Profile)
    profile.id = profile_id
    profile.role = role
    profile.full_name = name
    profile.email = email
    return profile


@pytest.fixture
def approved_profile(student_actor):
    return make_student_profile(student_actor.id)


@pytest.fixture
def open_request(senior_actor):
    """An open, unclaimed request posted by senior_actor."""
    request = MagicMock(spec=HelpRequest)
    request.id = uuid4()
    request.senior_id = senior_actor.id
    request.student_id = None
    request.title = "Help with video calls"
    request.status = RequestStatus.OPEN
    return request


@pytest.fixture
def claimed_request(open_request, student_actor):
    """open_request after student_actor claimed it."""
    open_request.student_id = student_actor.id
    open_request.status = RequestStatus.CLAIMED
    return open_request


@pytest.fixture
def scheduled_request(claimed_request):
    claimed_request.status = RequestStatus.SCHEDULED
    return claimed_request


@pytest.fixture
def scheduled_session(scheduled_request):
    """A scheduled, not yet signed-off session for scheduled_request."""
    session = MagicMock(spec=HelpSession)
    session.id = uuid4()
    session.request_id = scheduled_request.id
    session.senior_id = scheduled_request.senior_id
    session.student_id = scheduled_request.student_id
    session.scheduled_time = datetime.now(UTC) + timedelta(days=1)
    session.duration_minutes = 30
    session.meeting_link = "https://meet.jit.si/gc-test"
    session.notes = None
    session.status = SessionStatus.SCHEDULED
    session.senior_signed_off = False
    return session


# ============================================
# Real database (SQLite in memory)
# ============================================


@pytest_asyncio.fixture
async def db_session():
    """A fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(db_session):
    """
    A senior, an approved student with 2.0 hours, an unverified student and
    an admin, plus one open request posted by the senior.
    """
    senior = Profile(id=uuid4(), role=UserRole.SENIOR, full_name="Margaret", email="m@example.com")
    student = Profile(id=uuid4(), role=UserRole.STUDENT, full_name="Sam", email="s@example.com")
    pending = Profile(id=uuid4(), role=UserRole.STUDENT, full_name="Pat", email="p@example.com")
    admin = Profile(id=uuid4(), role=UserRole.ADMIN, full_name="Admin", email="a@example.com")
    db_session.add_all([senior, student, pending, admin])
    await db_session.flush()

    db_session.add_all(
        [
            StudentProfile(
                id=student.id,
                school_name="Lincoln High",
                skills=["smartphones"],
                verification_status=VerificationStatus.APPROVED,
                total_hours=2.0,
            ),
            StudentProfile(
                id=pending.id,
                school_name="Lincoln High",
                skills=[],
                verification_status=VerificationStatus.PENDING,
                total_hours=0.0,
            ),
        ]
    )

    request = HelpRequest(
        senior_id=senior.id,
        title="Set up video calls with my grandchildren",
        description="I would like to learn how to use video calls.",
        category="Video Calls",
        tags=["video"],
        urgency=Urgency.MEDIUM,
        status=RequestStatus.OPEN,
    )
    db_session.add(request)
    await db_session.commit()

    return {
        "senior": ActorContext(id=senior.id, role=UserRole.SENIOR, name="Margaret"),
        "student": ActorContext(id=student.id, role=UserRole.STUDENT, name="Sam"),
        "pending": ActorContext(id=pending.id, role=UserRole.STUDENT, name="Pat"),
        "admin": ActorContext(id=admin.id, role=UserRole.ADMIN, name="Admin"),
        "request_id": request.id,
    }
