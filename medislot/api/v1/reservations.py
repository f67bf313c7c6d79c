"""Reservation endpoints: booking, cancellation and listings."""

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, status

from medislot.api.deps import (
    AppNotifier,
    BookingServiceDep,
    CurrentPrincipal,
    CurrentProvider,
    CurrentRequester,
)
from medislot.api.errors import to_http_exception
from medislot.core.errors import RESERVATION_NOT_FOUND, NotFoundError, SchedulingError
from medislot.models.reservation import Reservation
from medislot.schemas.scheduling import BookRequest, BookResponse, ReservationResponse
from medislot.services.notifications import dispatch_notification
from medislot.utils.time import format_date, format_time

router = APIRouter()


def _variables(reservation: Reservation) -> dict[str, str]:
    return {
        "date": format_date(reservation.date),
        "time": format_time(reservation.time),
        "reservation_id": reservation.id,
    }


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a reservation",
)
async def book_reservation(
    requester: CurrentRequester,
    service: BookingServiceDep,
    notifier: AppNotifier,
    request: BookRequest,
    background_tasks: BackgroundTasks,
) -> BookResponse:
    """Book one unit of capacity in the slot containing the requested time."""
    if request.requester_id is not None and request.requester_id != requester.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot book on behalf of another requester",
        )

    try:
        reservation = await service.book(
            requester_id=requester.id,
            provider_id=request.provider_id,
            day=request.date,
            at=request.time,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    variables = _variables(reservation)
    background_tasks.add_task(
        dispatch_notification, notifier, reservation.requester_id, "reservation_booked", variables
    )
    background_tasks.add_task(
        dispatch_notification, notifier, reservation.provider_id, "reservation_received", variables
    )
    return BookResponse(reservation_id=reservation.id)


@router.delete(
    "/{reservation_id}",
    status_code=status.HTTP_200_OK,
    summary="Cancel a reservation",
)
async def cancel_reservation(
    reservation_id: str,
    principal: CurrentPrincipal,
    service: BookingServiceDep,
    notifier: AppNotifier,
    background_tasks: BackgroundTasks,
) -> dict:
    """Cancel a reservation as its requester or provider."""
    reservation = await service.get_reservation(reservation_id)
    if reservation is None:
        raise to_http_exception(
            NotFoundError("Reservation not found", code=RESERVATION_NOT_FOUND)
        )
    if principal.id not in (reservation.requester_id, reservation.provider_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a party to this reservation",
        )

    variables = _variables(reservation)
    counterpart = (
        reservation.provider_id
        if principal.id == reservation.requester_id
        else reservation.requester_id
    )

    try:
        await service.cancel(reservation_id, actor_id=principal.id)
    except SchedulingError as e:
        raise to_http_exception(e)

    background_tasks.add_task(
        dispatch_notification, notifier, counterpart, "reservation_cancelled", variables
    )
    return {}


@router.get(
    "",
    response_model=list[ReservationResponse],
    summary="List own reservations",
)
async def list_reservations(
    principal: CurrentPrincipal,
    service: BookingServiceDep,
    date: str | None = Query(None, description="YYYY-MM-DD format, providers only"),
) -> list[ReservationResponse]:
    """List reservations of the calling requester or provider."""
    try:
        if principal.is_provider:
            reservations = await service.list_for_provider(principal.id, day=date)
        else:
            reservations = await service.list_for_requester(principal.id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return [ReservationResponse.from_model(r) for r in reservations]


@router.post(
    "/{reservation_id}/complete",
    response_model=ReservationResponse,
    summary="Mark a reservation completed",
)
async def complete_reservation(
    reservation_id: str,
    provider: CurrentProvider,
    service: BookingServiceDep,
) -> ReservationResponse:
    try:
        reservation = await service.complete(reservation_id, provider.id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return ReservationResponse.from_model(reservation)
