"""Pytest configuration and fixtures."""

import os

# Point the module-level engine at SQLite before the application is imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator
from datetime import datetime

import httpx
import pytest
from sqlalchemy import NullPool, StaticPool
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from medislot.api.deps import get_clock
from medislot.core.config import Settings, get_settings
from medislot.core.security import create_access_token
from medislot.db.init_db import create_tables, drop_tables
from medislot.db.session import build_engine, build_sessionmaker, get_db
from medislot.main import app
from medislot.models.provider import Provider
from medislot.services.booking import BookingService
from medislot.services.ledger import LedgerService
from medislot.services.notifications import Notifier
from medislot.services.providers import ProviderService
from medislot.services.ratings import RatingService

# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed local wall-clock time; scenario dates are after this
FIXED_NOW = datetime(2025, 6, 1, 8, 0)
BOOKING_DATE = "2025-06-10"
PROVIDER_ID = "provider-1"
REQUESTER_ID = "requester-1"


def fixed_clock() -> datetime:
    return FIXED_NOW


class RecordingNotifier(Notifier):
    """Notifier that keeps sent messages in memory."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, recipient_id: str, subject: str, body: str) -> None:
        self.sent.append((recipient_id, subject, body))


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the default booking rules."""
    return Settings(env="test", database_url=TEST_DATABASE_URL)


@pytest.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async test database engine."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    await create_tables(engine)

    yield engine

    await drop_tables(engine)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with build_sessionmaker(async_engine)() as session:
        yield session


@pytest.fixture(scope="function")
async def file_sessionmaker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Sessionmaker on a file-backed database, one connection per session.

    Used by concurrency tests, where each simulated request needs its own
    connection and transaction.
    """
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'medislot.db'}",
        poolclass=NullPool,
    )

    await create_tables(engine)

    yield build_sessionmaker(engine)

    await engine.dispose()


@pytest.fixture
async def provider(async_session: AsyncSession) -> Provider:
    """Create a test provider."""
    record = Provider(id=PROVIDER_ID, display_name="Dr Test")
    async_session.add(record)
    await async_session.commit()
    await async_session.refresh(record)
    return record


@pytest.fixture
def ledger(async_session: AsyncSession, test_settings: Settings) -> LedgerService:
    return LedgerService(async_session, now=fixed_clock, settings=test_settings)


@pytest.fixture
def booking(async_session: AsyncSession, test_settings: Settings) -> BookingService:
    return BookingService(async_session, now=fixed_clock, settings=test_settings)


@pytest.fixture
def ratings(async_session: AsyncSession) -> RatingService:
    return RatingService(async_session)


@pytest.fixture
def directory(async_session: AsyncSession, test_settings: Settings) -> ProviderService:
    return ProviderService(async_session, now=fixed_clock, settings=test_settings)


@pytest.fixture
async def morning_window(provider: Provider, ledger: LedgerService):
    """Window on the booking date with one 09:00-10:00 slot for two bookings."""
    change = await ledger.add_window(
        provider.id,
        BOOKING_DATE,
        [("09:00", "10:00")],
        max_bookings_per_slot=2,
    )
    return change.window


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(scope="function")
async def client(
    async_session: AsyncSession,
    test_settings: Settings,
    notifier: RecordingNotifier,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create API test client with overridden dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.state.notifier = notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers_for(subject: str, actor_type: str) -> dict[str, str]:
    """Create authorization headers for a principal."""
    token = create_access_token(subject=subject, actor_type=actor_type)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def provider_headers() -> dict[str, str]:
    return auth_headers_for(PROVIDER_ID, "provider")


@pytest.fixture
def requester_headers() -> dict[str, str]:
    return auth_headers_for(REQUESTER_ID, "requester")
