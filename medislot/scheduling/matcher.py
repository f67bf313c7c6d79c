"""Availability matcher.

Resolves a requested time of day to the slot that serves it. Slots are
half-open intervals, so a slot ``09:00-10:00`` serves ``09:00`` through
``09:59`` and the next slot may start at ``10:00``.
"""

from datetime import time
from typing import Iterable, Literal, Protocol

from medislot.core.errors import NO_AVAILABILITY, NO_MATCHING_SLOT, CapacityError

MatchPolicy = Literal["containment", "exact"]


class SlotLike(Protocol):
    start_time: time
    end_time: time


def slot_matches(slot: SlotLike, requested: time, policy: MatchPolicy = "containment") -> bool:
    """Check whether a slot serves the requested time under a policy.

    Args:
        slot: Slot with start and end times
        requested: Requested time of day
        policy: ``containment`` accepts any time in ``[start, end)``;
            ``exact`` accepts only the slot's start time

    Returns:
        True if the slot serves the requested time
    """
    if policy == "exact":
        return slot.start_time == requested
    return slot.start_time <= requested < slot.end_time


def match_slot(
    slots: Iterable[SlotLike],
    requested: time,
    policy: MatchPolicy = "containment",
) -> SlotLike | None:
    """Return the earliest-starting slot serving ``requested``, if any.

    Overlapping slots are allowed, so more than one slot may contain the
    time. The earliest start wins to keep the choice deterministic.
    """
    candidates = [s for s in slots if slot_matches(s, requested, policy)]
    if not candidates:
        return None
    return min(candidates, key=lambda s: (s.start_time, s.end_time))


def resolve_slot(
    window,
    requested: time,
    policy: MatchPolicy = "containment",
) -> SlotLike:
    """Resolve a slot within a window or raise a capacity error.

    Args:
        window: Availability window (or None when the date has none)
        requested: Requested time of day
        policy: Match policy

    Returns:
        The matching slot

    Raises:
        CapacityError: ``NoAvailability`` if there is no window,
            ``NoMatchingSlot`` if no slot serves the time
    """
    if window is None:
        raise CapacityError(
            "Provider has no availability on this date",
            code=NO_AVAILABILITY,
        )

    slot = match_slot(window.slots, requested, policy)
    if slot is None:
        raise CapacityError(
            f"No slot contains {requested:%H:%M}",
            code=NO_MATCHING_SLOT,
        )
    return slot
