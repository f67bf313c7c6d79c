"""Tests for the booking transaction and reservation release."""

import uuid
from datetime import date, time

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.core.errors import CapacityError, NotFoundError, ValidationError
from medislot.models.provider import Provider
from medislot.models.reservation import Reservation, ReservationStatus
from medislot.services.booking import BookingService
from medislot.services.ledger import LedgerService

from tests.conftest import BOOKING_DATE, PROVIDER_ID, fixed_clock


class TestBook:
    """Tests for booking a reservation."""

    async def test_books_time_inside_slot(self, booking: BookingService, morning_window):
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:30")

        assert reservation.id is not None
        assert reservation.provider_id == PROVIDER_ID
        assert reservation.requester_id == "r1"
        assert reservation.date == date(2025, 6, 10)
        assert reservation.time == time(9, 30)
        assert reservation.status == ReservationStatus.BOOKED.value

    async def test_reservation_keeps_requested_time(
        self, booking: BookingService, morning_window
    ):
        """The reservation records the requested time, not the slot start."""
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:45")

        assert reservation.time == time(9, 45)

    async def test_time_outside_slots_has_no_match(
        self, booking: BookingService, morning_window
    ):
        with pytest.raises(CapacityError) as exc_info:
            await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "08:30")

        assert exc_info.value.code == "NoMatchingSlot"

    async def test_slot_end_is_exclusive(self, booking: BookingService, morning_window):
        with pytest.raises(CapacityError) as exc_info:
            await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "10:00")

        assert exc_info.value.code == "NoMatchingSlot"

    async def test_date_without_window_has_no_availability(
        self, booking: BookingService, morning_window
    ):
        with pytest.raises(CapacityError) as exc_info:
            await booking.book("r1", PROVIDER_ID, "2025-06-11", "09:00")

        assert exc_info.value.code == "NoAvailability"

    async def test_full_slot_is_rejected(
        self, booking: BookingService, morning_window, async_session: AsyncSession
    ):
        await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        await booking.book("r2", PROVIDER_ID, BOOKING_DATE, "09:15")

        with pytest.raises(CapacityError) as exc_info:
            await booking.book("r3", PROVIDER_ID, BOOKING_DATE, "09:30")

        assert exc_info.value.code == "SlotFull"
        assert await async_session.scalar(select(func.count(Reservation.id))) == 2

    async def test_same_requester_may_book_twice(self, booking: BookingService, morning_window):
        first = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        second = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")

        assert first.id != second.id

    async def test_unknown_provider_is_not_found(self, booking: BookingService, morning_window):
        with pytest.raises(NotFoundError) as exc_info:
            await booking.book("r1", "nobody", BOOKING_DATE, "09:00")

        assert exc_info.value.code == "ProviderNotFound"

    @pytest.mark.parametrize("day", ["2025-13-01", "june tenth", "", "2025-05-31"])
    async def test_invalid_date(self, booking: BookingService, morning_window, day):
        with pytest.raises(ValidationError) as exc_info:
            await booking.book("r1", PROVIDER_ID, day, "09:00")

        assert exc_info.value.code == "InvalidDate"

    @pytest.mark.parametrize("at", ["25:00", "9am", "09:60", ""])
    async def test_invalid_time(self, booking: BookingService, morning_window, at):
        with pytest.raises(ValidationError) as exc_info:
            await booking.book("r1", PROVIDER_ID, BOOKING_DATE, at)

        assert exc_info.value.code == "InvalidTime"

    async def test_same_day_booking_needs_lead_time(
        self, booking: BookingService, ledger: LedgerService, provider: Provider
    ):
        today = fixed_clock().date().isoformat()
        await ledger.add_window(provider.id, today, [("09:30", "11:00")])

        with pytest.raises(ValidationError) as exc_info:
            await booking.book("r1", provider.id, today, "08:45")
        assert exc_info.value.code == "InvalidTime"

        reservation = await booking.book("r1", provider.id, today, "10:00")
        assert reservation.time == time(10, 0)

    async def test_overlapping_slots_use_earliest_start(
        self, booking: BookingService, ledger: LedgerService, provider: Provider
    ):
        await ledger.add_window(
            provider.id,
            BOOKING_DATE,
            [("09:00", "10:00"), ("09:30", "10:30")],
            max_bookings_per_slot=1,
        )
        await booking.book("r1", provider.id, BOOKING_DATE, "09:00")

        # 09:45 is in both slots; the 09:00 slot is chosen and already full
        with pytest.raises(CapacityError) as exc_info:
            await booking.book("r2", provider.id, BOOKING_DATE, "09:45")

        assert exc_info.value.code == "SlotFull"

    async def test_exact_policy_requires_slot_start(
        self, async_session: AsyncSession, test_settings, morning_window
    ):
        exact = BookingService(
            async_session,
            now=fixed_clock,
            settings=test_settings.model_copy(update={"slot_match_policy": "exact"}),
        )

        with pytest.raises(CapacityError) as exc_info:
            await exact.book("r1", PROVIDER_ID, BOOKING_DATE, "09:30")
        assert exc_info.value.code == "NoMatchingSlot"

        reservation = await exact.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        assert reservation.time == time(9, 0)


class TestCancel:
    """Tests for cancelling reservations."""

    async def test_cancel_frees_capacity(self, booking: BookingService, morning_window):
        first = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        # The failed booking rolls back and expires loaded instances
        first_id = first.id
        await booking.book("r2", PROVIDER_ID, BOOKING_DATE, "09:10")
        with pytest.raises(CapacityError):
            await booking.book("r3", PROVIDER_ID, BOOKING_DATE, "09:20")

        await booking.cancel(first_id, actor_id="r1")

        reservation = await booking.book("r3", PROVIDER_ID, BOOKING_DATE, "09:20")
        assert reservation.requester_id == "r3"

    async def test_cancel_removes_reservation(
        self, booking: BookingService, morning_window, async_session: AsyncSession
    ):
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")

        await booking.cancel(reservation.id)

        assert await booking.get_reservation(reservation.id) is None
        assert await async_session.scalar(select(func.count(Reservation.id))) == 0

    async def test_second_cancel_is_not_found(self, booking: BookingService, morning_window):
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        await booking.cancel(reservation.id)

        with pytest.raises(NotFoundError) as exc_info:
            await booking.cancel(reservation.id)

        assert exc_info.value.code == "NotFound"

    async def test_unknown_id_is_not_found(self, booking: BookingService, provider: Provider):
        with pytest.raises(NotFoundError):
            await booking.cancel(str(uuid.uuid4()))

    async def test_malformed_id_is_not_found(self, booking: BookingService, provider: Provider):
        with pytest.raises(NotFoundError):
            await booking.cancel("not-a-uuid")

    async def test_cancel_leaves_window_untouched(
        self, booking: BookingService, ledger: LedgerService, morning_window
    ):
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")

        await booking.cancel(reservation.id)

        window = await ledger.get_window(PROVIDER_ID, BOOKING_DATE)
        assert window is not None
        assert [(s.start_time, s.end_time) for s in window.slots] == [(time(9), time(10))]


class TestComplete:
    """Tests for completing reservations."""

    async def test_provider_completes_own_reservation(
        self, booking: BookingService, morning_window
    ):
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")

        completed = await booking.complete(reservation.id, PROVIDER_ID)

        assert completed.status == ReservationStatus.COMPLETED.value

    async def test_other_provider_cannot_complete(
        self, booking: BookingService, morning_window
    ):
        reservation = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")

        with pytest.raises(NotFoundError):
            await booking.complete(reservation.id, "provider-2")

    async def test_completed_reservation_still_counts(
        self, booking: BookingService, morning_window
    ):
        first = await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        await booking.book("r2", PROVIDER_ID, BOOKING_DATE, "09:00")
        await booking.complete(first.id, PROVIDER_ID)

        with pytest.raises(CapacityError):
            await booking.book("r3", PROVIDER_ID, BOOKING_DATE, "09:00")


class TestListings:
    """Tests for reservation listings."""

    async def test_lists_for_requester_in_time_order(
        self, booking: BookingService, ledger: LedgerService, provider: Provider
    ):
        await ledger.add_window(PROVIDER_ID, BOOKING_DATE, [("09:00", "10:00")], 3)
        await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:40")
        await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:05")
        await booking.book("r2", PROVIDER_ID, BOOKING_DATE, "09:20")

        reservations = await booking.list_for_requester("r1")

        assert [r.time for r in reservations] == [time(9, 5), time(9, 40)]

    async def test_lists_for_provider_by_date(
        self, booking: BookingService, ledger: LedgerService, morning_window
    ):
        await ledger.add_window(PROVIDER_ID, "2025-06-11", [("09:00", "10:00")])
        await booking.book("r1", PROVIDER_ID, BOOKING_DATE, "09:00")
        await booking.book("r2", PROVIDER_ID, "2025-06-11", "09:00")

        everything = await booking.list_for_provider(PROVIDER_ID)
        one_day = await booking.list_for_provider(PROVIDER_ID, day="2025-06-11")

        assert len(everything) == 2
        assert [r.requester_id for r in one_day] == ["r2"]
