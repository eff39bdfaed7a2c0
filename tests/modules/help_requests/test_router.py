"""
API tests for the help request and session endpoints.

The service layer is mocked; these tests check routing, request validation,
authentication wiring and the error response format.
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from seniorhelp.core.auth import get_current_actor
from seniorhelp.core.database import get_db
from seniorhelp.main import app
from seniorhelp.modules.help_requests.models import RequestStatus, SessionStatus, Urgency
from seniorhelp.modules.help_requests.service import RateLimitExceededError, SignOffResult
from seniorhelp.modules.shared.errors import ConflictError, VerificationRequiredError

ROUTER_SERVICE = "seniorhelp.modules.help_requests.router.service"


def _request_row(senior_id, student_id=None, status=RequestStatus.OPEN):
    return SimpleNamespace(
        id=uuid4(),
        senior_id=senior_id,
        student_id=student_id,
        title="Help with email",
        description="I cannot find my attachments.",
        category="Email",
        tags=["attachments"],
        urgency=Urgency.MEDIUM,
        estimated_duration_minutes=30,
        is_physical_task=False,
        status=status,
        claimed_at=datetime.now(UTC) if student_id else None,
        created_at=datetime.now(UTC),
    )


def _session_row(request_id, senior_id, student_id, **overrides):
    values = dict(
        id=uuid4(),
        request_id=request_id,
        senior_id=senior_id,
        student_id=student_id,
        scheduled_time=datetime.now(UTC) + timedelta(days=1),
        duration_minutes=30,
        actual_duration_minutes=None,
        meeting_link="https://meet.jit.si/gc-test",
        notes=None,
        status=SessionStatus.SCHEDULED,
        senior_signed_off=False,
        completed_at=None,
        created_at=datetime.now(UTC),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def as_actor():
    """Authenticate requests as the given actor."""

    def _set(actor):
        app.dependency_overrides[get_current_actor] = lambda: actor

    async def _no_db():
        yield None

    app.dependency_overrides[get_db] = _no_db
    yield _set
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestRequestEndpoints:
    @pytest.mark.asyncio
    async def test_categories(self, client, as_actor, student_actor):
        as_actor(student_actor)
        response = await client.get("/api/v1/requests/categories")

        assert response.status_code == 200
        assert "Video Calls" in response.json()

    @pytest.mark.asyncio
    async def test_create_request_validates_category(self, client, as_actor, senior_actor):
        as_actor(senior_actor)
        with patch(f"{ROUTER_SERVICE}.create_request", AsyncMock()) as mock_create:
            response = await client.post(
                "/api/v1/requests",
                json={"title": "Help", "description": "Please", "category": "Gardening"},
            )

        assert response.status_code == 422
        mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_request(self, client, as_actor, senior_actor):
        as_actor(senior_actor)
        row = _request_row(senior_actor.id)
        with patch(f"{ROUTER_SERVICE}.create_request", AsyncMock(return_value=row)):
            response = await client.post(
                "/api/v1/requests",
                json={
                    "title": "Help with email",
                    "description": "I cannot find my attachments.",
                    "category": "Email",
                    "tags": ["Attachments", "attachments "],
                },
            )

        assert response.status_code == 201
        assert response.json()["status"] == "open"

    @pytest.mark.asyncio
    async def test_claim_success(self, client, as_actor, senior_actor, student_actor):
        as_actor(student_actor)
        row = _request_row(senior_actor.id, student_actor.id, RequestStatus.CLAIMED)
        with patch(f"{ROUTER_SERVICE}.claim_request", AsyncMock(return_value=row)):
            response = await client.post(f"/api/v1/requests/{row.id}/claim")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "claimed"
        assert body["student_id"] == str(student_actor.id)

    @pytest.mark.asyncio
    async def test_claim_unverified(self, client, as_actor, student_actor):
        as_actor(student_actor)
        with patch(
            f"{ROUTER_SERVICE}.claim_request",
            AsyncMock(side_effect=VerificationRequiredError()),
        ):
            response = await client.post(f"/api/v1/requests/{uuid4()}/claim")

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "VERIFICATION_REQUIRED"

    @pytest.mark.asyncio
    async def test_claim_conflict(self, client, as_actor, student_actor):
        as_actor(student_actor)
        with patch(
            f"{ROUTER_SERVICE}.claim_request",
            AsyncMock(side_effect=ConflictError("This request has already been claimed.")),
        ):
            response = await client.post(f"/api/v1/requests/{uuid4()}/claim")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_message_rate_limit_sets_retry_after(
        self, client, as_actor, student_actor
    ):
        as_actor(student_actor)
        with patch(
            f"{ROUTER_SERVICE}.send_message",
            AsyncMock(side_effect=RateLimitExceededError(60)),
        ):
            response = await client.post(
                f"/api/v1/requests/{uuid4()}/messages", json={"content": "Hi"}
            )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self, client):
        response = await client.get("/api/v1/requests")
        assert response.status_code in (401, 403)


class TestSessionEndpoints:
    @pytest.mark.asyncio
    async def test_sign_off_rejects_bad_rating(self, client, as_actor, senior_actor):
        as_actor(senior_actor)
        with patch(f"{ROUTER_SERVICE}.sign_off_session", AsyncMock()) as mock_sign_off:
            response = await client.post(
                f"/api/v1/sessions/{uuid4()}/sign-off",
                json={"actual_duration_minutes": 30, "rating": 6},
            )

        assert response.status_code == 422
        mock_sign_off.assert_not_called()

    @pytest.mark.asyncio
    async def test_sign_off_accepts_long_sessions(self, client, as_actor, senior_actor):
        as_actor(senior_actor)
        with patch(
            f"{ROUTER_SERVICE}.sign_off_session",
            AsyncMock(side_effect=ConflictError("Session is already signed off.")),
        ) as mock_sign_off:
            response = await client.post(
                f"/api/v1/sessions/{uuid4()}/sign-off",
                json={"actual_duration_minutes": 500, "rating": 5},
            )

        assert response.status_code == 409
        assert mock_sign_off.call_args.kwargs["actual_duration_minutes"] == 500

    @pytest.mark.asyncio
    async def test_sign_off_success(self, client, as_actor, senior_actor, student_actor):
        as_actor(senior_actor)
        request = _request_row(senior_actor.id, student_actor.id, RequestStatus.COMPLETED)
        session = _session_row(
            request.id,
            senior_actor.id,
            student_actor.id,
            status=SessionStatus.COMPLETED,
            senior_signed_off=True,
            actual_duration_minutes=45,
            completed_at=datetime.now(UTC),
        )
        review = SimpleNamespace(
            id=uuid4(),
            session_id=session.id,
            reviewer_id=senior_actor.id,
            reviewee_id=student_actor.id,
            rating=5,
            comment=None,
            created_at=datetime.now(UTC),
        )
        result = SignOffResult(session=session, review=review, request=request, hours_added=0.75)

        with patch(f"{ROUTER_SERVICE}.sign_off_session", AsyncMock(return_value=result)):
            response = await client.post(
                f"/api/v1/sessions/{session.id}/sign-off",
                json={"actual_duration_minutes": 45, "rating": 5},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["hours_added"] == 0.75
        assert body["request_status"] == "completed"
        assert body["session"]["senior_signed_off"] is True
        assert body["review"]["rating"] == 5

    @pytest.mark.asyncio
    async def test_calendar_download(self, client, as_actor, student_actor):
        as_actor(student_actor)
        session_id = uuid4()
        ics = "BEGIN:VCALENDAR\r\nEND:VCALENDAR"
        with patch(f"{ROUTER_SERVICE}.get_session_calendar", AsyncMock(return_value=ics)):
            response = await client.get(f"/api/v1/sessions/{session_id}/calendar")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        assert f'filename="session-{session_id}.ics"' in response.headers["content-disposition"]
        assert response.text == ics


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
