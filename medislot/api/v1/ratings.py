"""Provider rating endpoint."""

from fastapi import APIRouter, status

from medislot.api.deps import CurrentRequester, RatingServiceDep
from medislot.api.errors import to_http_exception
from medislot.core.errors import SchedulingError
from medislot.schemas.scheduling import RateRequest, RateResponse

router = APIRouter()


@router.post(
    "",
    response_model=RateResponse,
    status_code=status.HTTP_200_OK,
    summary="Rate a provider",
)
async def rate_provider(
    requester: CurrentRequester,
    service: RatingServiceDep,
    request: RateRequest,
) -> RateResponse:
    """Add a score between 0 and 5 to a provider's running mean."""
    try:
        summary = await service.rate(
            request.provider_id,
            request.score,
            requester_id=requester.id,
            comment=request.comment,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return RateResponse(rating=float(summary.rating), rating_count=summary.rating_count)
