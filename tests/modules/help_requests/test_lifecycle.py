"""
Unit tests for the help request state machine and lifecycle rules.
"""

from uuid import uuid4

import pytest

from seniorhelp.core.auth import ActorContext
from seniorhelp.modules.help_requests.lifecycle import (
    SESSION_STATUS_TRANSITIONS,
    VALID_STATUS_TRANSITIONS,
    InvalidStatusTransitionError,
    can_claim,
    can_see_request,
    claimant_invariant_holds,
    ensure_session_transition,
    ensure_transition,
    hours_to_add,
    is_participant,
    is_terminal,
    is_valid_rating,
)
from seniorhelp.modules.help_requests.models import RequestStatus, SessionStatus
from seniorhelp.modules.users.models import UserRole, VerificationStatus

from .conftest import make_student_profile


class TestStatusTransitions:
    """Tests for the request transition table."""

    def test_open_can_be_claimed_or_cancelled(self):
        assert VALID_STATUS_TRANSITIONS[RequestStatus.OPEN] == {
            RequestStatus.CLAIMED,
            RequestStatus.CANCELLED,
        }

    def test_claimed_can_be_scheduled_or_cancelled(self):
        assert VALID_STATUS_TRANSITIONS[RequestStatus.CLAIMED] == {
            RequestStatus.SCHEDULED,
            RequestStatus.CANCELLED,
        }

    def test_scheduled_can_start_complete_or_cancel(self):
        assert VALID_STATUS_TRANSITIONS[RequestStatus.SCHEDULED] == {
            RequestStatus.IN_PROGRESS,
            RequestStatus.COMPLETED,
            RequestStatus.CANCELLED,
        }

    def test_in_progress_can_complete_or_cancel(self):
        assert VALID_STATUS_TRANSITIONS[RequestStatus.IN_PROGRESS] == {
            RequestStatus.COMPLETED,
            RequestStatus.CANCELLED,
        }

    def test_terminal_states_have_no_transitions(self):
        assert VALID_STATUS_TRANSITIONS[RequestStatus.COMPLETED] == set()
        assert VALID_STATUS_TRANSITIONS[RequestStatus.CANCELLED] == set()

    def test_all_statuses_are_in_transition_map(self):
        for status in RequestStatus:
            assert status in VALID_STATUS_TRANSITIONS
        for status in SessionStatus:
            assert status in SESSION_STATUS_TRANSITIONS

    def test_ensure_transition_returns_new_status(self):
        assert ensure_transition(RequestStatus.OPEN, RequestStatus.CLAIMED) == RequestStatus.CLAIMED

    @pytest.mark.parametrize(
        "current,new",
        [
            (RequestStatus.OPEN, RequestStatus.SCHEDULED),
            (RequestStatus.OPEN, RequestStatus.COMPLETED),
            (RequestStatus.CLAIMED, RequestStatus.COMPLETED),
            (RequestStatus.CLAIMED, RequestStatus.OPEN),
            (RequestStatus.COMPLETED, RequestStatus.CANCELLED),
            (RequestStatus.CANCELLED, RequestStatus.OPEN),
        ],
    )
    def test_invalid_transitions_raise(self, current, new):
        with pytest.raises(InvalidStatusTransitionError):
            ensure_transition(current, new)

    def test_completed_session_cannot_be_cancelled(self):
        with pytest.raises(InvalidStatusTransitionError):
            ensure_session_transition(SessionStatus.COMPLETED, SessionStatus.CANCELLED)

    def test_is_terminal(self):
        assert is_terminal(RequestStatus.COMPLETED)
        assert is_terminal(RequestStatus.CANCELLED)
        assert not is_terminal(RequestStatus.IN_PROGRESS)


class TestInvalidStatusTransitionError:
    def test_error_message_contains_both_statuses(self):
        error = InvalidStatusTransitionError(
            RequestStatus.OPEN, RequestStatus.COMPLETED, {RequestStatus.CLAIMED}
        )
        assert "open" in str(error)
        assert "completed" in str(error)
        assert "claimed" in str(error)

    def test_error_stores_statuses(self):
        error = InvalidStatusTransitionError(RequestStatus.OPEN, RequestStatus.COMPLETED, set())
        assert error.current_status == RequestStatus.OPEN
        assert error.new_status == RequestStatus.COMPLETED


class TestClaimantInvariant:
    def test_open_request_has_no_claimant(self):
        assert claimant_invariant_holds(RequestStatus.OPEN, None)
        assert not claimant_invariant_holds(RequestStatus.OPEN, uuid4())

    @pytest.mark.parametrize(
        "status",
        [
            RequestStatus.CLAIMED,
            RequestStatus.SCHEDULED,
            RequestStatus.IN_PROGRESS,
            RequestStatus.COMPLETED,
        ],
    )
    def test_claimed_statuses_need_a_claimant(self, status):
        assert claimant_invariant_holds(status, uuid4())
        assert not claimant_invariant_holds(status, None)

    def test_cancelled_is_exempt(self):
        assert claimant_invariant_holds(RequestStatus.CANCELLED, None)
        assert claimant_invariant_holds(RequestStatus.CANCELLED, uuid4())


class TestVerificationGate:
    def test_approved_student_can_claim(self):
        assert can_claim(make_student_profile(uuid4(), VerificationStatus.APPROVED))

    @pytest.mark.parametrize("status", [VerificationStatus.PENDING, VerificationStatus.REJECTED])
    def test_unapproved_student_cannot_claim(self, status):
        assert not can_claim(make_student_profile(uuid4(), status))

    def test_missing_profile_cannot_claim(self):
        assert not can_claim(None)


class TestVisibility:
    def test_any_student_sees_open_requests(self, open_request, other_student_actor):
        assert can_see_request(other_student_actor, open_request)

    def test_other_student_cannot_see_claimed_request(self, claimed_request, other_student_actor):
        assert not can_see_request(other_student_actor, claimed_request)

    def test_participants_and_admin_see_claimed_request(
        self, claimed_request, senior_actor, student_actor, admin_actor
    ):
        assert can_see_request(senior_actor, claimed_request)
        assert can_see_request(student_actor, claimed_request)
        assert can_see_request(admin_actor, claimed_request)

    def test_other_senior_cannot_see_open_request(self, open_request):
        stranger = ActorContext(id=uuid4(), role=UserRole.SENIOR)
        assert not can_see_request(stranger, open_request)

    def test_is_participant(self, claimed_request, senior_actor, student_actor, admin_actor):
        assert is_participant(senior_actor, claimed_request)
        assert is_participant(student_actor, claimed_request)
        assert not is_participant(admin_actor, claimed_request)


class TestRatingAndHours:
    @pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
    def test_valid_ratings(self, rating):
        assert is_valid_rating(rating)

    @pytest.mark.parametrize("rating", [0, 6, -1, 3.5, "5", True, None])
    def test_invalid_ratings(self, rating):
        assert not is_valid_rating(rating)

    def test_hours_for_ninety_minutes(self):
        assert hours_to_add(90) == 1.5

    def test_hours_for_forty_five_minutes(self):
        assert hours_to_add(45) == 0.75

    @pytest.mark.parametrize("minutes", [0, -30])
    def test_non_positive_duration_rejected(self, minutes):
        with pytest.raises(ValueError):
            hours_to_add(minutes)
