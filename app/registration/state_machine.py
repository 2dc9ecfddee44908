# app/registration/state_machine.py
from __future__ import annotations

from enum import Enum
from typing import Dict, Set

from app.registration.errors import InvalidTransition


class RegistrationState(str, Enum):
    IDLE = "idle"
    RESOLVING_IDENTITIES = "resolving_identities"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


class RegistrationEvent(str, Enum):
    SUBMIT = "submit"
    IDENTITIES_RESOLVED = "identities_resolved"
    TRANSACTION_ACCEPTED = "transaction_accepted"
    CONFIRMATION_RECEIVED = "confirmation_received"
    PERSISTED = "persisted"
    FAILURE = "failure"


TERMINAL_STATES: Set[RegistrationState] = {RegistrationState.COMPLETED, RegistrationState.FAILED}

ALLOWED_TRANSITIONS: Dict[RegistrationState, Dict[RegistrationEvent, RegistrationState]] = {
    RegistrationState.IDLE: {
        RegistrationEvent.SUBMIT: RegistrationState.RESOLVING_IDENTITIES,
    },
    RegistrationState.RESOLVING_IDENTITIES: {
        RegistrationEvent.IDENTITIES_RESOLVED: RegistrationState.SUBMITTING,
    },
    RegistrationState.SUBMITTING: {
        RegistrationEvent.TRANSACTION_ACCEPTED: RegistrationState.AWAITING_CONFIRMATION,
    },
    RegistrationState.AWAITING_CONFIRMATION: {
        RegistrationEvent.CONFIRMATION_RECEIVED: RegistrationState.PERSISTING,
    },
    RegistrationState.PERSISTING: {
        RegistrationEvent.PERSISTED: RegistrationState.COMPLETED,
    },
    RegistrationState.COMPLETED: {},
    RegistrationState.FAILED: {},
}


def transition(state: RegistrationState, event: RegistrationEvent) -> RegistrationState:
    """
    Pure transition function. FAILURE moves any non-terminal state to FAILED;
    terminal states accept no event.
    """
    if event == RegistrationEvent.FAILURE and state not in TERMINAL_STATES:
        return RegistrationState.FAILED

    nxt = ALLOWED_TRANSITIONS[state].get(event)
    if nxt is None:
        raise InvalidTransition(f"{event.value} is not allowed in state {state.value}")
    return nxt
