"""Tests for the PaymentOrderStateMachine domain guard.

These tests verify that:
    1. The settle path PENDING -> PAID -> CONFIRMED is allowed.
    2. Failure and timeout terminals are reachable only from legal states.
    3. Terminal states accept no further events.
    4. validate_transition and fire_event report bad steps.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from agent_marketplace.domain.exceptions import InvalidStateTransitionError
from agent_marketplace.domain.state_machine import (
    PaymentOrderStateMachine,
    fire_event,
    validate_transition,
)


class TestHappyPath:
    def test_full_settlement(self) -> None:
        sm = PaymentOrderStateMachine("PENDING")
        assert sm.status == "PENDING"

        sm.transfer_submitted()
        assert sm.status == "PAID"

        sm.settlement_confirmed()
        assert sm.status == "CONFIRMED"

    def test_default_start_is_pending(self) -> None:
        assert PaymentOrderStateMachine().status == "PENDING"


class TestFailurePaths:
    def test_order_call_fails_before_transfer(self) -> None:
        sm = PaymentOrderStateMachine("PENDING")
        sm.call_failed()
        assert sm.status == "FAILED"

    def test_poll_fails_after_transfer(self) -> None:
        sm = PaymentOrderStateMachine("PAID")
        sm.call_failed()
        assert sm.status == "FAILED"

    def test_deadline_expires_after_transfer(self) -> None:
        sm = PaymentOrderStateMachine("PAID")
        sm.deadline_expired()
        assert sm.status == "TIMED_OUT"


class TestBlockedTransitions:
    def test_cannot_confirm_unpaid_order(self) -> None:
        sm = PaymentOrderStateMachine("PENDING")
        with pytest.raises(TransitionNotAllowed):
            sm.settlement_confirmed()

    def test_deadline_needs_a_transfer(self) -> None:
        sm = PaymentOrderStateMachine("PENDING")
        with pytest.raises(TransitionNotAllowed):
            sm.deadline_expired()

    @pytest.mark.parametrize("terminal", ["CONFIRMED", "TIMED_OUT", "FAILED"])
    def test_terminal_states_are_final(self, terminal: str) -> None:
        sm = PaymentOrderStateMachine(terminal)
        assert sm.get_allowed_events() == []
        with pytest.raises(TransitionNotAllowed):
            sm.call_failed()


class TestValidateTransition:
    def test_returns_new_status(self) -> None:
        assert validate_transition("PAID", "settlement_confirmed") == "CONFIRMED"

    def test_unknown_event(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("PENDING", "refund")

    def test_unknown_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            PaymentOrderStateMachine("SETTLED")

    def test_allowed_events_from_paid(self) -> None:
        sm = PaymentOrderStateMachine("PAID")
        assert len(sm.get_allowed_events()) == 3


class TestFireEvent:
    def test_returns_new_status(self) -> None:
        assert fire_event("PENDING", "transfer_submitted") == "PAID"

    def test_illegal_step_is_a_domain_error(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            fire_event("PENDING", "settlement_confirmed")
        assert exc_info.value.current_state == "PENDING"
        assert exc_info.value.attempted_event == "settlement_confirmed"

    def test_unknown_event_is_a_domain_error(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            fire_event("PAID", "refund")
