"""Provider registration and directory queries."""

import logging
from datetime import date, time
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.core.config import Settings, get_settings
from medislot.core.errors import PROVIDER_NOT_FOUND, NotFoundError
from medislot.core.logging import audit_logger
from medislot.db.session import unit_of_work
from medislot.models.availability import AvailabilityWindow
from medislot.models.provider import Provider
from medislot.scheduling.matcher import match_slot
from medislot.scheduling.policy import ensure_bookable
from medislot.services.queries import count_reservations
from medislot.utils.time import Clock, local_now, parse_date, parse_time

logger = logging.getLogger(__name__)


async def require_provider(session: AsyncSession, provider_id: str) -> Provider:
    """Load a provider or raise ``ProviderNotFound``."""
    provider = await session.get(Provider, provider_id)
    if provider is None:
        raise NotFoundError(f"Provider {provider_id} not found", code=PROVIDER_NOT_FOUND)
    return provider


class ProviderService:
    """Service for provider records and availability search."""

    def __init__(
        self,
        session: AsyncSession,
        now: Clock | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.now = now or local_now
        self.settings = settings or get_settings()

    async def get_provider(self, provider_id: str) -> Provider | None:
        return await self.session.get(Provider, provider_id)

    async def register_provider(
        self,
        provider_id: str,
        display_name: str | None = None,
    ) -> tuple[Provider, bool]:
        """Create the provider record for an authenticated provider.

        Registration is idempotent: calling it again only updates the
        display name when one is given.

        Returns:
            Tuple of (provider, created)
        """
        async with unit_of_work(self.session):
            provider = await self.session.get(Provider, provider_id)
            created = provider is None
            if created:
                provider = Provider(id=provider_id, display_name=display_name)
                self.session.add(provider)
            elif display_name is not None:
                provider.display_name = display_name

        if created:
            audit_logger.log(
                action="provider.registered",
                actor_type="provider",
                actor_id=provider_id,
                entity_type="provider",
                entity_id=provider_id,
            )
        return provider, created

    async def list_by_rating(self, limit: int = 20) -> Sequence[Provider]:
        """List providers ordered by mean rating, best first."""
        result = await self.session.execute(
            select(Provider)
            .order_by(
                Provider.rating.desc(),
                Provider.rating_count.desc(),
                Provider.id,
            )
            .limit(limit)
        )
        return result.scalars().all()

    async def find_available(
        self,
        day: str | date,
        at: str | time,
    ) -> list[Provider]:
        """Find providers with open capacity at a date and time.

        Args:
            day: Requested date
            at: Requested time of day

        Returns:
            Providers whose matching slot still has capacity

        Raises:
            ValidationError: If the date or time cannot be booked
        """
        target = parse_date(day)
        requested = parse_time(at)
        ensure_bookable(target, requested, self.now(), self.settings.same_day_lead_minutes)

        result = await self.session.execute(
            select(AvailabilityWindow, Provider)
            .join(Provider, Provider.id == AvailabilityWindow.provider_id)
            .where(AvailabilityWindow.date == target)
            .order_by(Provider.id)
        )

        available = []
        for window, provider in result.all():
            slot = match_slot(window.slots, requested, self.settings.slot_match_policy)
            if slot is None:
                continue
            booked = await count_reservations(
                self.session, provider.id, target, slot.start_time, slot.end_time
            )
            if booked < window.max_bookings_per_slot:
                available.append(provider)

        logger.debug(f"{len(available)} providers available on {target} at {requested}")
        return available
