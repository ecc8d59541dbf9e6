"""Unit lifecycle states, callback phases, and priority tiers.

A unit starts ``registered``, becomes ``enabled`` once its dependencies and
enable callbacks have run, and ends the cycle ``disabled``. A disabled unit
may be enabled again; nothing ever returns to ``registered``.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class UnitState(StrEnum):
    """Lifecycle state of a single unit."""

    REGISTERED = "registered"
    ENABLED = "enabled"
    DISABLED = "disabled"


class Phase(StrEnum):
    """Lifecycle phase a callback is attached to.

    ``enable`` and ``disable`` run per unit during its own transition.
    ``post_enable`` runs after every unit of a bulk pass is enabled;
    ``pre_disable`` runs across all enabled units before any is disabled.
    """

    ENABLE = "enable"
    POST_ENABLE = "post_enable"
    PRE_DISABLE = "pre_disable"
    DISABLE = "disable"


class Priority(IntEnum):
    """Callback priority tier. Lower tiers are invoked first."""

    FIRST = 1
    SECOND = 2
    THIRD = 3
    FOURTH = 4
    FIFTH = 5


DEFAULT_PRIORITY = Priority.THIRD


# --- Transition map ---

UNIT_TRANSITIONS: dict[str, list[str]] = {
    "registered": ["enabled"],
    "enabled": ["disabled"],
    "disabled": ["enabled"],  # re-enable
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = UNIT_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed


def coerce_priority(value: Priority | int) -> Priority:
    """Return *value* as a :class:`Priority`, accepting plain ordinals 1-5."""
    try:
        return Priority(value)
    except ValueError:
        msg = f"Priority must be between {Priority.FIRST} and {Priority.FIFTH}, got {value!r}"
        raise ValueError(msg) from None
