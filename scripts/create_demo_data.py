"""Create a demo provider with a week of availability and print test tokens."""

import asyncio
from datetime import date, time, timedelta
from uuid import uuid4

from medislot.core.security import create_access_token
from medislot.db.init_db import create_tables
from medislot.db.session import AsyncSessionLocal
from medislot.scheduling.policy import SlotSpec
from medislot.services.ledger import LedgerService
from medislot.services.providers import ProviderService

DEMO_PROVIDER_ID = "demo-provider"
DAYS_AHEAD = 7


async def create_demo_data() -> None:
    """Register the demo provider and publish hourly slots for a week."""
    await create_tables()

    async with AsyncSessionLocal() as session:
        providers = ProviderService(session)
        _, created = await providers.register_provider(DEMO_PROVIDER_ID, "Demo Provider")
        print("Registered demo provider" if created else "Demo provider already exists")

        ledger = LedgerService(session)
        morning = [SlotSpec(time(hour, 0), time(hour + 1, 0)) for hour in (9, 10, 11)]
        afternoon = [SlotSpec(time(hour, 0), time(hour + 1, 0)) for hour in (14, 15, 16)]

        for offset in range(1, DAYS_AHEAD + 1):
            day = date.today() + timedelta(days=offset)
            # Weekdays only
            if day.weekday() >= 5:
                continue
            change = await ledger.update_window(
                DEMO_PROVIDER_ID, day, morning + afternoon, max_bookings_per_slot=3
            )
            print(f"{day.isoformat()}: {len(change.window.slots)} slots")

    requester_id = f"demo-requester-{uuid4().hex[:8]}"
    print("\n=== Tokens ===")
    print(f"Provider ({DEMO_PROVIDER_ID}): {create_access_token(DEMO_PROVIDER_ID, 'provider')}")
    print(f"Requester ({requester_id}): {create_access_token(requester_id, 'requester')}")


if __name__ == "__main__":
    asyncio.run(create_demo_data())
