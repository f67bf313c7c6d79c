"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from medislot.core.config import Settings, get_settings
from medislot.core.security import Principal, resolve_principal
from medislot.db.session import get_db
from medislot.services.booking import BookingService
from medislot.services.ledger import LedgerService
from medislot.services.notifications import Notifier
from medislot.services.providers import ProviderService
from medislot.services.ratings import RatingService
from medislot.utils.time import Clock, local_now

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal:
    """Resolve the bearer token to a provider or requester.

    Raises:
        HTTPException: If no usable token was presented
    """
    principal = resolve_principal(credentials.credentials) if credentials else None
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


async def get_current_provider(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    if not principal.is_provider:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Provider authentication required",
        )
    return principal


async def get_current_requester(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    if not principal.is_requester:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Requester authentication required",
        )
    return principal


def get_clock() -> Clock:
    """Return the clock used for date and lead-time checks."""
    return local_now


def get_notifier(request: Request) -> Notifier:
    """Return the notifier built at application startup."""
    return request.app.state.notifier


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
CurrentClock = Annotated[Clock, Depends(get_clock)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
CurrentProvider = Annotated[Principal, Depends(get_current_provider)]
CurrentRequester = Annotated[Principal, Depends(get_current_requester)]
AppNotifier = Annotated[Notifier, Depends(get_notifier)]


def get_booking_service(
    session: DbSession, clock: CurrentClock, settings: AppSettings
) -> BookingService:
    return BookingService(session, now=clock, settings=settings)


def get_ledger_service(
    session: DbSession, clock: CurrentClock, settings: AppSettings
) -> LedgerService:
    return LedgerService(session, now=clock, settings=settings)


def get_provider_service(
    session: DbSession, clock: CurrentClock, settings: AppSettings
) -> ProviderService:
    return ProviderService(session, now=clock, settings=settings)


def get_rating_service(session: DbSession) -> RatingService:
    return RatingService(session)


BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
LedgerServiceDep = Annotated[LedgerService, Depends(get_ledger_service)]
ProviderServiceDep = Annotated[ProviderService, Depends(get_provider_service)]
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
