"""Slot ledger: a provider's per-date availability windows.

Windows hold slots and a per-slot capacity. The ledger never stores
whether a slot is booked; occupancy is always counted from reservations,
so cancelling a reservation restores capacity without touching the ledger.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.core.config import Settings, get_settings
from medislot.core.errors import (
    CAPACITY_BELOW_BOOKINGS,
    DUPLICATE_SLOT,
    INVALID_CAPACITY,
    NO_VALID_SLOTS,
    WINDOW_HAS_RESERVATIONS,
    WINDOW_NOT_FOUND,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from medislot.core.logging import audit_logger
from medislot.db.session import unit_of_work
from medislot.models.availability import AvailabilityWindow, Slot
from medislot.models.reservation import Reservation, ReservationStatus
from medislot.scheduling.matcher import slot_matches
from medislot.scheduling.policy import (
    REASON_DUPLICATE,
    RejectedSlot,
    SlotSpec,
    ensure_not_past,
    filter_slots,
)
from medislot.services.providers import require_provider
from medislot.services.queries import count_reservations, get_window, list_reservations_on
from medislot.utils.time import Clock, local_now, parse_date, parse_time

logger = logging.getLogger(__name__)

SlotInput = SlotSpec | tuple[str | time, str | time]


@dataclass
class WindowChange:
    """Outcome of a ledger mutation."""

    window: AvailabilityWindow | None
    rejected: list[RejectedSlot] = field(default_factory=list)
    # Reservations deleted because no remaining slot covers them
    released: list[Reservation] = field(default_factory=list)


@dataclass(frozen=True)
class SlotOccupancy:
    """Derived occupancy of one slot."""

    slot: Slot
    booked: int
    capacity: int

    @property
    def remaining(self) -> int:
        return max(self.capacity - self.booked, 0)


def to_slot_spec(item: SlotInput) -> SlotSpec:
    """Normalize a slot given as a ``SlotSpec`` or a ``(start, end)`` pair."""
    if isinstance(item, SlotSpec):
        return item
    start, end = item
    return SlotSpec(start_time=parse_time(start), end_time=parse_time(end))


def _covered(reservation: Reservation, slots: Iterable[SlotSpec | Slot]) -> bool:
    return any(slot_matches(s, reservation.time) for s in slots)


def _still_pending(reservation: Reservation, now: datetime) -> bool:
    """Booked and not yet started; completed or elapsed visits are history."""
    if reservation.status != ReservationStatus.BOOKED.value:
        return False
    return reservation.date > now.date() or (
        reservation.date == now.date() and reservation.time >= now.time()
    )


class LedgerService:
    """Service for managing a provider's availability windows."""

    def __init__(
        self,
        session: AsyncSession,
        now: Clock | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.now = now or local_now
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_window(self, provider_id: str, day: str | date) -> AvailabilityWindow | None:
        return await get_window(self.session, provider_id, parse_date(day))

    async def list_windows(
        self,
        provider_id: str,
        from_date: str | date | None = None,
    ) -> Sequence[AvailabilityWindow]:
        """List a provider's windows in date order, optionally from a date."""
        query = select(AvailabilityWindow).where(
            AvailabilityWindow.provider_id == provider_id,
        )
        if from_date is not None:
            query = query.where(AvailabilityWindow.date >= parse_date(from_date))

        result = await self.session.execute(query.order_by(AvailabilityWindow.date))
        return result.scalars().all()

    async def get_slot_occupancy(
        self,
        provider_id: str,
        day: str | date,
    ) -> list[SlotOccupancy]:
        """Get booked and remaining capacity for every slot on a date.

        Raises:
            NotFoundError: If the provider has no window on that date
        """
        target = parse_date(day)
        window = await get_window(self.session, provider_id, target)
        if window is None:
            raise NotFoundError(
                f"No availability window on {target.isoformat()}",
                code=WINDOW_NOT_FOUND,
            )

        occupancy = []
        for slot in window.slots:
            booked = await count_reservations(
                self.session, provider_id, target, slot.start_time, slot.end_time
            )
            occupancy.append(
                SlotOccupancy(slot=slot, booked=booked, capacity=window.max_bookings_per_slot)
            )
        return occupancy

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_window(
        self,
        provider_id: str,
        day: str | date,
        slots: Iterable[SlotInput],
        max_bookings_per_slot: int | None = None,
    ) -> WindowChange:
        """Publish slots for a date, appending to an existing window.

        Slots inside the same-day lead time, or whose start time is already
        taken on that date, are rejected individually.

        Args:
            provider_id: Owning provider
            day: Calendar date of the window
            slots: Candidate slots
            max_bookings_per_slot: Capacity per slot; keeps the current
                value for an existing window when omitted

        Returns:
            WindowChange with the window and the rejected slots

        Raises:
            ValidationError: ``InvalidDate`` for past dates, ``NoValidSlots``
                when every candidate is rejected
            ConflictError: ``DuplicateSlot`` when every candidate duplicates
                an existing start time, ``CapacityBelowBookings`` when the
                new capacity is below current occupancy
        """
        target = parse_date(day)
        now = self.now()
        ensure_not_past(target, now)
        candidates = [to_slot_spec(s) for s in slots]
        self._check_capacity_value(max_bookings_per_slot)

        async with unit_of_work(self.session):
            await require_provider(self.session, provider_id)
            window = await get_window(self.session, provider_id, target, for_update=True)
            existing_starts = [s.start_time for s in window.slots] if window else []

            accepted, rejected = filter_slots(
                target,
                candidates,
                now,
                self.settings.same_day_lead_minutes,
                existing_starts=existing_starts,
            )
            if not accepted:
                self._raise_nothing_accepted(target, rejected)

            if window is None:
                window = AvailabilityWindow(
                    provider_id=provider_id,
                    date=target,
                    max_bookings_per_slot=(
                        max_bookings_per_slot or self.settings.default_max_bookings_per_slot
                    ),
                )
                self.session.add(window)
            elif max_bookings_per_slot is not None:
                await self._ensure_capacity_fits(
                    provider_id, target, list(window.slots) + accepted, max_bookings_per_slot
                )
                window.max_bookings_per_slot = max_bookings_per_slot

            for spec in accepted:
                window.slots.append(Slot(start_time=spec.start_time, end_time=spec.end_time))

        audit_logger.log(
            action="window.slots_added",
            actor_type="provider",
            actor_id=provider_id,
            entity_type="availability_window",
            entity_id=window.id,
            metadata={
                "date": target.isoformat(),
                "added": len(accepted),
                "rejected": len(rejected),
                "max_bookings_per_slot": window.max_bookings_per_slot,
            },
        )
        return WindowChange(window=window, rejected=rejected)

    async def update_window(
        self,
        provider_id: str,
        day: str | date,
        slots: Iterable[SlotInput],
        max_bookings_per_slot: int | None = None,
    ) -> WindowChange:
        """Replace the slot set for a date, creating the window if needed.

        Reservations no longer covered by any new slot are handled by the
        window cancellation policy: released under ``cascade``, or the
        update is refused under ``forbid``. Completed and elapsed
        reservations are left alone.

        Raises:
            ValidationError: ``InvalidDate`` or ``NoValidSlots``
            ConflictError: ``DuplicateSlot``, ``WindowHasReservations`` or
                ``CapacityBelowBookings``
        """
        target = parse_date(day)
        now = self.now()
        ensure_not_past(target, now)
        candidates = [to_slot_spec(s) for s in slots]
        self._check_capacity_value(max_bookings_per_slot)

        async with unit_of_work(self.session):
            await require_provider(self.session, provider_id)
            window = await get_window(self.session, provider_id, target, for_update=True)

            accepted, rejected = filter_slots(
                target, candidates, now, self.settings.same_day_lead_minutes
            )
            if not accepted:
                self._raise_nothing_accepted(target, rejected)

            capacity = max_bookings_per_slot or (
                window.max_bookings_per_slot
                if window is not None
                else self.settings.default_max_bookings_per_slot
            )

            reservations = await list_reservations_on(self.session, provider_id, target)
            orphaned = [
                r for r in reservations if _still_pending(r, now) and not _covered(r, accepted)
            ]
            released = await self._release(orphaned)
            await self._ensure_capacity_fits(provider_id, target, accepted, capacity)

            if window is None:
                window = AvailabilityWindow(
                    provider_id=provider_id,
                    date=target,
                    max_bookings_per_slot=capacity,
                )
                self.session.add(window)
            else:
                # Flush removals first so replacement start times stay unique
                window.slots.clear()
                await self.session.flush()
                window.max_bookings_per_slot = capacity

            for spec in accepted:
                window.slots.append(Slot(start_time=spec.start_time, end_time=spec.end_time))

        audit_logger.log(
            action="window.replaced",
            actor_type="provider",
            actor_id=provider_id,
            entity_type="availability_window",
            entity_id=window.id,
            metadata={
                "date": target.isoformat(),
                "slots": len(accepted),
                "rejected": len(rejected),
                "released": [r.id for r in released],
            },
        )
        return WindowChange(window=window, rejected=rejected, released=released)

    async def cancel_window(self, provider_id: str, day: str | date) -> WindowChange:
        """Remove the window for a date with all of its slots.

        Returns:
            WindowChange whose ``released`` lists reservations deleted under
            the ``cascade`` policy. Completed and already elapsed
            reservations are kept as history.

        Raises:
            ValidationError: ``InvalidDate`` for past dates
            NotFoundError: ``WindowNotFound`` if there is no window
            ConflictError: ``WindowHasReservations`` under ``forbid``
        """
        target = parse_date(day)
        now = self.now()
        ensure_not_past(target, now)

        async with unit_of_work(self.session):
            window = await get_window(self.session, provider_id, target, for_update=True)
            if window is None:
                raise NotFoundError(
                    f"No availability window on {target.isoformat()}",
                    code=WINDOW_NOT_FOUND,
                )

            reservations = await list_reservations_on(self.session, provider_id, target)
            pending = [r for r in reservations if _still_pending(r, now)]
            released = await self._release(pending)
            await self.session.delete(window)

        audit_logger.log(
            action="window.cancelled",
            actor_type="provider",
            actor_id=provider_id,
            entity_type="availability_window",
            entity_id=window.id,
            metadata={
                "date": target.isoformat(),
                "released": [r.id for r in released],
            },
        )
        return WindowChange(window=None, released=released)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_capacity_value(max_bookings_per_slot: int | None) -> None:
        if max_bookings_per_slot is not None and max_bookings_per_slot < 1:
            raise ValidationError(
                "max_bookings_per_slot must be a positive integer",
                code=INVALID_CAPACITY,
            )

    @staticmethod
    def _raise_nothing_accepted(target: date, rejected: list[RejectedSlot]) -> None:
        if rejected and all(r.reason == REASON_DUPLICATE for r in rejected):
            raise ConflictError(
                f"Every slot duplicates an existing start time on {target.isoformat()}",
                code=DUPLICATE_SLOT,
            )
        raise ValidationError(
            f"No valid slots to publish on {target.isoformat()}",
            code=NO_VALID_SLOTS,
        )

    async def _release(self, reservations: list[Reservation]) -> list[Reservation]:
        """Apply the window cancellation policy to dependent reservations."""
        if not reservations:
            return []

        if self.settings.window_cancel_policy == "forbid":
            raise ConflictError(
                f"{len(reservations)} reservation(s) depend on this window",
                code=WINDOW_HAS_RESERVATIONS,
            )

        for reservation in reservations:
            await self.session.delete(reservation)
        logger.info(f"Released {len(reservations)} reservation(s) with their window")
        return reservations

    async def _ensure_capacity_fits(
        self,
        provider_id: str,
        target: date,
        slots: Iterable[SlotSpec | Slot],
        capacity: int,
    ) -> None:
        """Refuse a capacity lower than any slot's current occupancy."""
        for slot in slots:
            booked = await count_reservations(
                self.session, provider_id, target, slot.start_time, slot.end_time
            )
            if booked > capacity:
                raise ConflictError(
                    f"Slot {slot.start_time:%H:%M} already has {booked} bookings, "
                    f"more than the requested capacity {capacity}",
                    code=CAPACITY_BELOW_BOOKINGS,
                )
