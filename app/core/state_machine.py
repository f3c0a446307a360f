"""
Transition tables for the stateful entities.

Each table maps an action to the set of states it may start from and the
state it leads to. Services call ``ensure_transition`` before mutating a
status so that every illegal move fails the same way.
"""
import enum
from typing import Dict, FrozenSet, Iterable, NamedTuple, Type

from app.core.errors import DomainValidationError, InvalidStateTransition


class Transition(NamedTuple):
    allowed_from: FrozenSet[str]
    to: str


def _t(allowed: Iterable[str], to: str) -> Transition:
    return Transition(frozenset(allowed), to)


REFUND_TRANSITIONS: Dict[str, Transition] = {
    "approve": _t({"REQUESTED", "PENDING_APPROVAL"}, "APPROVED"),
    "reject": _t({"REQUESTED", "PENDING_APPROVAL"}, "REJECTED"),
    "mark_processing": _t({"APPROVED"}, "PROCESSING"),
    "complete": _t({"PROCESSING", "APPROVED"}, "COMPLETED"),
    "fail": _t({"REQUESTED", "PENDING_APPROVAL", "APPROVED", "PROCESSING"}, "FAILED"),
}

SUBSCRIPTION_TRANSITIONS: Dict[str, Transition] = {
    "activate": _t({"PENDING"}, "ACTIVE"),
    "pause": _t({"ACTIVE"}, "PAUSED"),
    "resume": _t({"PAUSED"}, "ACTIVE"),
    "cancel": _t({"PENDING", "ACTIVE", "PAUSED", "EXPIRED", "ERROR"}, "CANCELED"),
    "auto_complete": _t({"ACTIVE"}, "CANCELED"),
}

PLAN_TRANSITIONS: Dict[str, Transition] = {
    "apply_payment": _t({"ACTIVE"}, "ACTIVE"),
    "complete": _t({"ACTIVE", "ERROR"}, "COMPLETE"),
    "cancel": _t({"ACTIVE", "ERROR"}, "CANCELED"),
}

MACHINES: Dict[str, Dict[str, Transition]] = {
    "refund": REFUND_TRANSITIONS,
    "subscription": SUBSCRIPTION_TRANSITIONS,
    "payment plan": PLAN_TRANSITIONS,
}


def can_transition(entity: str, current: str, action: str) -> bool:
    transition = MACHINES[entity][action]
    return current in transition.allowed_from


def ensure_transition(entity: str, current: str, action: str) -> str:
    """
    Validate ``action`` against the entity's table.

    Args:
        entity: Table name ("refund", "subscription", "payment plan")
        current: Current status value
        action: Action being attempted

    Returns:
        The status the entity moves to

    Raises:
        InvalidStateTransition: If ``current`` is not an allowed source state
    """
    transition = MACHINES[entity][action]
    if not can_transition(entity, current, action):
        raise InvalidStateTransition(entity, action, current, transition.allowed_from)
    return transition.to


def parse_status(status_enum: Type[enum.Enum], value: str) -> str:
    """Normalize a client-supplied status name; unknown names are a validation error."""
    try:
        return status_enum((value or "").strip().upper()).value
    except ValueError:
        raise DomainValidationError(f"Unknown status: {value}") from None
