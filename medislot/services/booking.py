"""Booking transaction and reservation release.

A booking is accepted only if, inside one transaction, the requested time
matches a slot and the slot's live reservation count is below the window
capacity. The window row is locked before counting, so two concurrent
bookings for the last unit of capacity cannot both commit.
"""

import logging
from datetime import date, time
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.core.config import Settings, get_settings
from medislot.core.errors import RESERVATION_NOT_FOUND, SLOT_FULL, CapacityError, NotFoundError
from medislot.core.logging import audit_logger
from medislot.db.session import unit_of_work
from medislot.models.reservation import Reservation, ReservationStatus
from medislot.scheduling.matcher import resolve_slot
from medislot.scheduling.policy import ensure_bookable
from medislot.services.providers import require_provider
from medislot.services.queries import count_reservations, get_window
from medislot.utils.time import Clock, local_now, parse_date, parse_time

logger = logging.getLogger(__name__)


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


class BookingService:
    """Service for booking, cancelling and listing reservations."""

    def __init__(
        self,
        session: AsyncSession,
        now: Clock | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.now = now or local_now
        self.settings = settings or get_settings()

    async def book(
        self,
        requester_id: str,
        provider_id: str,
        day: str | date,
        at: str | time,
    ) -> Reservation:
        """Reserve one unit of capacity in the slot containing ``at``.

        Args:
            requester_id: Requesting principal
            provider_id: Provider to book with
            day: Requested date (``YYYY-MM-DD``)
            at: Requested time of day (``HH:MM``)

        Returns:
            The committed reservation

        Raises:
            ValidationError: ``InvalidDate`` or ``InvalidTime``
            NotFoundError: ``ProviderNotFound``
            CapacityError: ``NoAvailability``, ``NoMatchingSlot`` or ``SlotFull``
            TransientError: If the transaction could not be committed
        """
        target = parse_date(day)
        requested = parse_time(at)
        ensure_bookable(target, requested, self.now(), self.settings.same_day_lead_minutes)

        async with unit_of_work(self.session):
            await require_provider(self.session, provider_id)

            window = await get_window(self.session, provider_id, target, for_update=True)
            slot = resolve_slot(window, requested, self.settings.slot_match_policy)

            booked = await count_reservations(
                self.session, provider_id, target, slot.start_time, slot.end_time
            )
            if booked >= window.max_bookings_per_slot:
                raise CapacityError(
                    f"Slot {slot.start_time:%H:%M}-{slot.end_time:%H:%M} is full",
                    code=SLOT_FULL,
                )

            reservation = Reservation(
                provider_id=provider_id,
                requester_id=requester_id,
                date=target,
                time=requested,
                status=ReservationStatus.BOOKED.value,
            )
            self.session.add(reservation)

        audit_logger.log(
            action="reservation.booked",
            actor_type="requester",
            actor_id=requester_id,
            entity_type="reservation",
            entity_id=reservation.id,
            metadata={
                "provider_id": provider_id,
                "date": target.isoformat(),
                "time": f"{requested:%H:%M}",
                "slot_load": f"{booked + 1}/{window.max_bookings_per_slot}",
            },
        )
        return reservation

    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        if not _is_uuid(reservation_id):
            return None
        return await self.session.get(Reservation, reservation_id)

    async def cancel(self, reservation_id: str, actor_id: str | None = None) -> None:
        """Delete a reservation, releasing its unit of capacity.

        Raises:
            NotFoundError: If the reservation does not exist (including a
                second cancellation of the same reservation)
        """
        if not _is_uuid(reservation_id):
            raise NotFoundError("Reservation not found", code=RESERVATION_NOT_FOUND)

        async with unit_of_work(self.session):
            result = await self.session.execute(
                delete(Reservation).where(Reservation.id == reservation_id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Reservation not found", code=RESERVATION_NOT_FOUND)

        audit_logger.log(
            action="reservation.cancelled",
            actor_type="principal",
            actor_id=actor_id,
            entity_type="reservation",
            entity_id=reservation_id,
        )

    async def complete(self, reservation_id: str, provider_id: str) -> Reservation:
        """Mark a provider's reservation as completed."""
        async with unit_of_work(self.session):
            reservation = await self.get_reservation(reservation_id)
            if reservation is None or reservation.provider_id != provider_id:
                raise NotFoundError("Reservation not found", code=RESERVATION_NOT_FOUND)
            reservation.status = ReservationStatus.COMPLETED.value

        audit_logger.log(
            action="reservation.completed",
            actor_type="provider",
            actor_id=provider_id,
            entity_type="reservation",
            entity_id=reservation.id,
        )
        return reservation

    async def list_for_requester(self, requester_id: str) -> Sequence[Reservation]:
        result = await self.session.execute(
            select(Reservation)
            .where(Reservation.requester_id == requester_id)
            .order_by(Reservation.date, Reservation.time)
        )
        return result.scalars().all()

    async def list_for_provider(
        self,
        provider_id: str,
        day: str | date | None = None,
    ) -> Sequence[Reservation]:
        """List a provider's reservations, optionally for one date."""
        query = select(Reservation).where(Reservation.provider_id == provider_id)
        if day is not None:
            query = query.where(Reservation.date == parse_date(day))

        result = await self.session.execute(query.order_by(Reservation.date, Reservation.time))
        return result.scalars().all()
