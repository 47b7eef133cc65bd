"""Charge status state machine enforced before every status write."""

from enum import Enum

from syspay.common.errors import InvalidTransitionError


class ChargeStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


INITIAL_STATUS = ChargeStatus.PENDING

ALLOWED_TRANSITIONS: dict[ChargeStatus, frozenset[ChargeStatus]] = {
    ChargeStatus.PENDING: frozenset(
        {ChargeStatus.PAID, ChargeStatus.FAILED, ChargeStatus.EXPIRED, ChargeStatus.CANCELLED}
    ),
    ChargeStatus.PAID: frozenset({ChargeStatus.REFUNDED}),
    ChargeStatus.FAILED: frozenset(),
    ChargeStatus.EXPIRED: frozenset(),
    ChargeStatus.CANCELLED: frozenset(),
    ChargeStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)


def is_terminal(status: ChargeStatus) -> bool:
    return ChargeStatus(status) in TERMINAL_STATUSES


def validate_transition(current: ChargeStatus, new: ChargeStatus) -> None:
    """Raise when a transition is not allowed by the state machine."""

    current = ChargeStatus(current)
    new = ChargeStatus(new)
    if new not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, new.value)
