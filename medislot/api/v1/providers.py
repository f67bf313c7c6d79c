"""Provider directory endpoints."""

from fastapi import APIRouter, Query, Response, status

from medislot.api.deps import (
    CurrentPrincipal,
    CurrentProvider,
    LedgerServiceDep,
    ProviderServiceDep,
)
from medislot.api.errors import to_http_exception
from medislot.core.errors import SchedulingError
from medislot.schemas.scheduling import (
    ProviderResponse,
    RegisterProviderRequest,
    SlotOccupancyResponse,
)

router = APIRouter()


@router.post(
    "/me",
    response_model=ProviderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register the calling provider",
)
async def register_provider(
    provider: CurrentProvider,
    service: ProviderServiceDep,
    request: RegisterProviderRequest,
    response: Response,
) -> ProviderResponse:
    """Create the provider record for the authenticated provider.

    Returns 200 instead of 201 when the provider was already registered.
    """
    try:
        record, created = await service.register_provider(provider.id, request.display_name)
    except SchedulingError as e:
        raise to_http_exception(e)

    if not created:
        response.status_code = status.HTTP_200_OK
    return ProviderResponse.from_model(record)


@router.get(
    "/top-rated",
    response_model=list[ProviderResponse],
    summary="List providers by rating",
)
async def list_top_rated(
    principal: CurrentPrincipal,
    service: ProviderServiceDep,
    limit: int = Query(20, ge=1, le=100),
) -> list[ProviderResponse]:
    providers = await service.list_by_rating(limit=limit)
    return [ProviderResponse.from_model(p) for p in providers]


@router.get(
    "/available",
    response_model=list[ProviderResponse],
    summary="Find providers with open capacity",
)
async def find_available_providers(
    principal: CurrentPrincipal,
    service: ProviderServiceDep,
    date: str = Query(..., description="YYYY-MM-DD format"),
    time: str = Query(..., description="HH:MM format"),
) -> list[ProviderResponse]:
    """List providers that can take a booking at the given date and time."""
    try:
        providers = await service.find_available(date, time)
    except SchedulingError as e:
        raise to_http_exception(e)

    return [ProviderResponse.from_model(p) for p in providers]


@router.get(
    "/{provider_id}/availability",
    response_model=list[SlotOccupancyResponse],
    summary="Get slot occupancy for a date",
)
async def get_provider_availability(
    provider_id: str,
    principal: CurrentPrincipal,
    service: LedgerServiceDep,
    date: str = Query(..., description="YYYY-MM-DD format"),
) -> list[SlotOccupancyResponse]:
    """Show each slot's booked and remaining capacity on a date."""
    try:
        occupancy = await service.get_slot_occupancy(provider_id, date)
    except SchedulingError as e:
        raise to_http_exception(e)

    return [SlotOccupancyResponse.from_occupancy(o) for o in occupancy]
