"""
Order status state machine.

Pure functions over status values; persistence lives in orders.services.
"""
from core.exceptions import IllegalTransition
from .models import Order

Status = Order.Status

VALID_TRANSITIONS = {
    Status.PENDING: {Status.CONFIRMED, Status.CANCELLED},
    Status.CONFIRMED: {Status.DISPATCHED, Status.CANCELLED},
    Status.DISPATCHED: {Status.DELIVERED, Status.CANCELLED},
    Status.DELIVERED: set(),
    Status.CANCELLED: set(),
}

TERMINAL_STATES = {Status.DELIVERED, Status.CANCELLED}


def can_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def validate_transition(current: str, target: str) -> None:
    """Raise IllegalTransition unless current -> target is a legal edge."""
    if not can_transition(current, target):
        raise IllegalTransition(current, target)


def next_states(current: str) -> list:
    """Legal targets from ``current`` in lifecycle order."""
    return [value for value in Status.values if value in VALID_TRANSITIONS.get(current, set())]
