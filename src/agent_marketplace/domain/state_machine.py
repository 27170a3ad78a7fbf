"""Payment order lifecycle guard.

One x402 hire moves an order through at most three steps: the order is
created (PENDING), the USDT transfer is mined (PAID), and the order API
reports it settled (CONFIRMED). Every step is attempted once, so the only
other outcomes are FAILED (an API or chain call errored) and TIMED_OUT (the
polling deadline passed after the transfer).

    PENDING --transfer_submitted--> PAID --settlement_confirmed--> CONFIRMED
       |                             |  \\
       +--------call_failed----------+   +--deadline_expired--> TIMED_OUT
                    |
                    v
                  FAILED

python-statemachine enforces the table; PaymentOrder.advance() goes through
fire_event() so an illegal step such as PENDING -> CONFIRMED never reaches
the order's status field.
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from agent_marketplace.domain.exceptions import InvalidStateTransitionError

ORDER_EVENTS = ("transfer_submitted", "settlement_confirmed", "deadline_expired", "call_failed")


class PaymentOrderStateMachine(StateMachine):
    """Guards the lifecycle of a single x402 payment order.

    Usage:
        sm = PaymentOrderStateMachine(current_status="PENDING")
        sm.transfer_submitted()
        sm.status  # "PAID"
    """

    PENDING = State("PENDING", initial=True)
    PAID = State("PAID")
    CONFIRMED = State("CONFIRMED", final=True)
    TIMED_OUT = State("TIMED_OUT", final=True)
    FAILED = State("FAILED", final=True)

    transfer_submitted = PENDING.to(PAID)
    settlement_confirmed = PAID.to(CONFIRMED)
    deadline_expired = PAID.to(TIMED_OUT)
    call_failed = PENDING.to(FAILED) | PAID.to(FAILED)

    def __init__(self, current_status: str = "PENDING") -> None:
        known = sorted(s.value for s in self.states)
        if current_status not in known:
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {', '.join(known)}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        return [event.name for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> str:
    """Return the status an order moves to when event_name fires.

    Raises:
        TransitionNotAllowed: If the event is illegal from current_status.
        ValueError: If the status or event name is unknown.
    """
    sm = PaymentOrderStateMachine(current_status=current_status)
    if event_name not in ORDER_EVENTS:
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed from {current_status}: {sm.get_allowed_events()}"
        )
    sm.send(event_name)
    return sm.status


def fire_event(current_status: str, event_name: str) -> str:
    """Like validate_transition, but reports failures as a domain error.

    Raises:
        InvalidStateTransitionError: For an unknown or illegal event.
    """
    try:
        return validate_transition(current_status, event_name)
    except (TransitionNotAllowed, ValueError) as err:
        raise InvalidStateTransitionError(current_status, event_name) from err
