"""Availability window endpoints for the calling provider."""

from fastapi import APIRouter, BackgroundTasks, Query, status

from medislot.api.deps import AppNotifier, CurrentProvider, LedgerServiceDep
from medislot.api.errors import to_http_exception
from medislot.core.errors import SchedulingError
from medislot.scheduling.policy import SlotSpec
from medislot.schemas.scheduling import WindowChangeResponse, WindowRequest, WindowResponse
from medislot.services.ledger import WindowChange
from medislot.services.notifications import Notifier, dispatch_notification
from medislot.utils.time import format_date, format_time, parse_time

router = APIRouter()


def _slot_specs(request: WindowRequest) -> list[SlotSpec]:
    return [
        SlotSpec(start_time=parse_time(s.start_time), end_time=parse_time(s.end_time))
        for s in request.slots
    ]


def _notify_released(
    background_tasks: BackgroundTasks,
    notifier: Notifier,
    change: WindowChange,
) -> None:
    for reservation in change.released:
        background_tasks.add_task(
            dispatch_notification,
            notifier,
            reservation.requester_id,
            "window_cancelled",
            {
                "date": format_date(reservation.date),
                "time": format_time(reservation.time),
                "reservation_id": reservation.id,
            },
        )


@router.get(
    "",
    response_model=list[WindowResponse],
    summary="List own availability windows",
)
async def list_windows(
    provider: CurrentProvider,
    service: LedgerServiceDep,
    from_date: str | None = Query(None, alias="fromDate", description="YYYY-MM-DD format"),
) -> list[WindowResponse]:
    try:
        windows = await service.list_windows(provider.id, from_date=from_date)
    except SchedulingError as e:
        raise to_http_exception(e)

    return [WindowResponse.from_model(w) for w in windows]


@router.post(
    "",
    response_model=WindowChangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add slots to a date",
)
async def add_window(
    provider: CurrentProvider,
    service: LedgerServiceDep,
    request: WindowRequest,
) -> WindowChangeResponse:
    """Publish slots for a date, appending to an existing window."""
    try:
        slots = _slot_specs(request)
        change = await service.add_window(
            provider.id,
            request.date,
            slots,
            max_bookings_per_slot=request.max_bookings_per_slot,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return WindowChangeResponse.from_change(change)


@router.put(
    "",
    response_model=WindowChangeResponse,
    summary="Replace the slots of a date",
)
async def update_window(
    provider: CurrentProvider,
    service: LedgerServiceDep,
    notifier: AppNotifier,
    request: WindowRequest,
    background_tasks: BackgroundTasks,
) -> WindowChangeResponse:
    """Replace a date's slot set wholesale."""
    try:
        slots = _slot_specs(request)
        change = await service.update_window(
            provider.id,
            request.date,
            slots,
            max_bookings_per_slot=request.max_bookings_per_slot,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    _notify_released(background_tasks, notifier, change)
    return WindowChangeResponse.from_change(change)


@router.delete(
    "/{date}",
    response_model=WindowChangeResponse,
    summary="Cancel a date's window",
)
async def cancel_window(
    date: str,
    provider: CurrentProvider,
    service: LedgerServiceDep,
    notifier: AppNotifier,
    background_tasks: BackgroundTasks,
) -> WindowChangeResponse:
    """Remove the window for a date and notify affected requesters."""
    try:
        change = await service.cancel_window(provider.id, date)
    except SchedulingError as e:
        raise to_http_exception(e)

    _notify_released(background_tasks, notifier, change)
    return WindowChangeResponse.from_change(change)
