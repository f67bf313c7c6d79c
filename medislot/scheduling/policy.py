"""Lead-time and slot acceptance rules for the availability ledger.

Same-day activity needs a minimum lead time: a provider cannot publish,
and a requester cannot book, a time that starts less than
``lead_minutes`` from now. Earlier dates are rejected outright.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

from medislot.core.errors import INVALID_DATE, INVALID_TIME, ValidationError

# Rejection reasons reported back to providers
REASON_LEAD_TIME = "lead_time"
REASON_DUPLICATE = "duplicate"


@dataclass(frozen=True)
class SlotSpec:
    """An input slot before it is written to the ledger."""

    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValidationError(
                f"Slot end {self.end_time:%H:%M} must be after start {self.start_time:%H:%M}",
                code=INVALID_TIME,
            )


@dataclass(frozen=True)
class RejectedSlot:
    slot: SlotSpec
    reason: str


def ensure_not_past(target: date, now: datetime) -> None:
    """Raise ``InvalidDate`` if ``target`` is before today."""
    if target < now.date():
        raise ValidationError(
            f"Date {target.isoformat()} is in the past",
            code=INVALID_DATE,
        )


def meets_lead_time(target: date, start: time, now: datetime, lead_minutes: int) -> bool:
    """Check the same-day lead-time rule.

    Times on future dates always pass. On today's date, the start must be
    at least ``lead_minutes`` after ``now``.
    """
    if target != now.date():
        return target > now.date()
    return datetime.combine(target, start) >= now + timedelta(minutes=lead_minutes)


def ensure_bookable(target: date, requested: time, now: datetime, lead_minutes: int) -> None:
    """Validate the date and time of a booking request.

    Raises:
        ValidationError: ``InvalidDate`` for past dates, ``InvalidTime``
            when a same-day time is inside the lead-time window
    """
    ensure_not_past(target, now)
    if not meets_lead_time(target, requested, now, lead_minutes):
        raise ValidationError(
            f"Bookings on {target.isoformat()} need {lead_minutes} minutes notice",
            code=INVALID_TIME,
        )


def filter_slots(
    target: date,
    candidates: Iterable[SlotSpec],
    now: datetime,
    lead_minutes: int,
    existing_starts: Iterable[time] = (),
) -> tuple[list[SlotSpec], list[RejectedSlot]]:
    """Split candidate slots into accepted and rejected.

    A slot is rejected when it breaks the same-day lead time or when its
    start time is already taken, either by an existing slot or by an
    earlier candidate in the same request.

    Returns:
        Tuple of (accepted slots, rejected slots with reasons)
    """
    taken = set(existing_starts)
    accepted: list[SlotSpec] = []
    rejected: list[RejectedSlot] = []

    for slot in candidates:
        if not meets_lead_time(target, slot.start_time, now, lead_minutes):
            rejected.append(RejectedSlot(slot, REASON_LEAD_TIME))
        elif slot.start_time in taken:
            rejected.append(RejectedSlot(slot, REASON_DUPLICATE))
        else:
            taken.add(slot.start_time)
            accepted.append(slot)

    return accepted, rejected
