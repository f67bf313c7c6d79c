"""Shared ledger queries used by the booking and ledger services."""

from datetime import date, time

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.models.availability import AvailabilityWindow
from medislot.models.reservation import Reservation


async def get_window(
    session: AsyncSession,
    provider_id: str,
    day: date,
    for_update: bool = False,
) -> AvailabilityWindow | None:
    """Get a provider's window for a date.

    With ``for_update`` the window row is locked until the transaction
    ends, which serializes bookings and ledger edits on that date.
    """
    query = select(AvailabilityWindow).where(
        AvailabilityWindow.provider_id == provider_id,
        AvailabilityWindow.date == day,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)

    result = await session.execute(query)
    return result.scalar_one_or_none()


async def count_reservations(
    session: AsyncSession,
    provider_id: str,
    day: date,
    start: time,
    end: time,
) -> int:
    """Count live reservations whose time falls in ``[start, end)``."""
    result = await session.execute(
        select(func.count(Reservation.id)).where(
            Reservation.provider_id == provider_id,
            Reservation.date == day,
            Reservation.time >= start,
            Reservation.time < end,
        )
    )
    return result.scalar_one()


async def list_reservations_on(
    session: AsyncSession,
    provider_id: str,
    day: date,
) -> list[Reservation]:
    result = await session.execute(
        select(Reservation)
        .where(
            Reservation.provider_id == provider_id,
            Reservation.date == day,
        )
        .order_by(Reservation.time, Reservation.created_at)
    )
    return list(result.scalars().all())
