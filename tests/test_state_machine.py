"""Unit tests for charge status state-machine guardrails."""

import pytest

from syspay.common.errors import InvalidTransitionError, ValidationError
from syspay.services.charges.state_machine import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ChargeStatus,
    is_terminal,
    validate_transition,
)


def test_valid_transition():
    """Sanity check: a legal transition should pass."""

    validate_transition(ChargeStatus.PENDING, ChargeStatus.PAID)
    validate_transition("PAID", "REFUNDED")


def test_invalid_transition():
    """Illegal transition must raise with both states in the message."""

    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition(ChargeStatus.PAID, ChargeStatus.PENDING)
    assert exc_info.value.message == "Invalid transition: PAID -> PENDING"
    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.errors[0]["field"] == "status"


def test_self_transition_is_rejected():
    with pytest.raises(InvalidTransitionError):
        validate_transition(ChargeStatus.PENDING, ChargeStatus.PENDING)


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_statuses_accept_nothing(status):
    assert is_terminal(status)
    for target in ChargeStatus:
        with pytest.raises(InvalidTransitionError):
            validate_transition(status, target)


def test_terminal_set():
    assert TERMINAL_STATUSES == {
        ChargeStatus.FAILED,
        ChargeStatus.EXPIRED,
        ChargeStatus.CANCELLED,
        ChargeStatus.REFUNDED,
    }
    assert ALLOWED_TRANSITIONS[ChargeStatus.PAID] == {ChargeStatus.REFUNDED}


ALLOWED_PAIRS = [(src, dst) for src, targets in ALLOWED_TRANSITIONS.items() for dst in targets]
REJECTED_PAIRS = [
    (src, dst) for src in ChargeStatus for dst in ChargeStatus if dst not in ALLOWED_TRANSITIONS.get(src, ())
]


@pytest.mark.parametrize(("current", "new"), ALLOWED_PAIRS, ids=lambda s: s.value)
def test_every_allowed_transition_passes(current, new):
    validate_transition(current, new)


@pytest.mark.parametrize(("current", "new"), REJECTED_PAIRS, ids=lambda s: s.value)
def test_every_other_transition_is_rejected(current, new):
    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition(current, new)
    assert exc_info.value.message == f"Invalid transition: {current.value} -> {new.value}"


def test_pending_and_paid_are_the_only_open_states():
    assert set(ALLOWED_TRANSITIONS) - TERMINAL_STATUSES == {ChargeStatus.PENDING, ChargeStatus.PAID}
    assert ALLOWED_TRANSITIONS[ChargeStatus.PENDING] == {
        ChargeStatus.PAID,
        ChargeStatus.FAILED,
        ChargeStatus.EXPIRED,
        ChargeStatus.CANCELLED,
    }
