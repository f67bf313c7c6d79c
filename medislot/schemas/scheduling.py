"""Pydantic schemas for the scheduling API.

JSON bodies use camelCase field names. Dates and times travel as
``YYYY-MM-DD`` and ``HH:MM`` strings and are parsed by the services, so
malformed values are reported as ``InvalidDate`` or ``InvalidTime``.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from medislot.models.availability import AvailabilityWindow
from medislot.models.provider import Provider
from medislot.models.reservation import Reservation
from medislot.scheduling.policy import RejectedSlot
from medislot.services.ledger import SlotOccupancy, WindowChange
from medislot.utils.time import format_date, format_time


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Provider Schemas
# =============================================================================


class RegisterProviderRequest(CamelModel):
    """Request to register the calling provider."""

    display_name: str | None = Field(None, max_length=200)


class ProviderResponse(CamelModel):
    """Provider with its rating aggregate."""

    id: str
    display_name: str | None
    rating: float
    rating_count: int

    @classmethod
    def from_model(cls, provider: Provider) -> "ProviderResponse":
        return cls(
            id=provider.id,
            display_name=provider.display_name,
            rating=float(provider.rating),
            rating_count=provider.rating_count,
        )


# =============================================================================
# Availability Schemas
# =============================================================================


class SlotInput(CamelModel):
    """Slot as submitted by a provider."""

    start_time: str = Field(description="HH:MM format")
    end_time: str = Field(description="HH:MM format")


class WindowRequest(CamelModel):
    """Request to add to or replace a date's availability."""

    date: str = Field(description="YYYY-MM-DD format")
    slots: list[SlotInput] = Field(min_length=1)
    max_bookings_per_slot: int | None = Field(None, ge=1)


class SlotResponse(CamelModel):
    start_time: str
    end_time: str


class RejectedSlotResponse(CamelModel):
    """Input slot that was not published, with the reason."""

    start_time: str
    end_time: str
    reason: str

    @classmethod
    def from_rejected(cls, rejected: RejectedSlot) -> "RejectedSlotResponse":
        return cls(
            start_time=format_time(rejected.slot.start_time),
            end_time=format_time(rejected.slot.end_time),
            reason=rejected.reason,
        )


class WindowResponse(CamelModel):
    """Availability window for one date."""

    id: str
    provider_id: str
    date: str
    max_bookings_per_slot: int
    slots: list[SlotResponse]

    @classmethod
    def from_model(cls, window: AvailabilityWindow) -> "WindowResponse":
        slots = sorted(window.slots, key=lambda s: (s.start_time, s.end_time))
        return cls(
            id=window.id,
            provider_id=window.provider_id,
            date=format_date(window.date),
            max_bookings_per_slot=window.max_bookings_per_slot,
            slots=[
                SlotResponse(
                    start_time=format_time(s.start_time),
                    end_time=format_time(s.end_time),
                )
                for s in slots
            ],
        )


class WindowChangeResponse(CamelModel):
    """Result of a window mutation."""

    window: WindowResponse | None
    rejected: list[RejectedSlotResponse] = []
    released_reservation_ids: list[str] = []

    @classmethod
    def from_change(cls, change: WindowChange) -> "WindowChangeResponse":
        return cls(
            window=WindowResponse.from_model(change.window) if change.window else None,
            rejected=[RejectedSlotResponse.from_rejected(r) for r in change.rejected],
            released_reservation_ids=[r.id for r in change.released],
        )


class SlotOccupancyResponse(CamelModel):
    """Derived booking load of one slot."""

    start_time: str
    end_time: str
    booked: int
    capacity: int
    remaining: int

    @classmethod
    def from_occupancy(cls, occupancy: SlotOccupancy) -> "SlotOccupancyResponse":
        return cls(
            start_time=format_time(occupancy.slot.start_time),
            end_time=format_time(occupancy.slot.end_time),
            booked=occupancy.booked,
            capacity=occupancy.capacity,
            remaining=occupancy.remaining,
        )


# =============================================================================
# Reservation Schemas
# =============================================================================


class BookRequest(CamelModel):
    """Request to book a reservation."""

    provider_id: str
    date: str = Field(description="YYYY-MM-DD format")
    time: str = Field(description="HH:MM format")
    requester_id: str | None = Field(
        None,
        description="Must match the authenticated requester when given",
    )


class BookResponse(CamelModel):
    reservation_id: str


class ReservationResponse(CamelModel):
    """Reservation details."""

    id: str
    provider_id: str
    requester_id: str
    date: str
    time: str
    status: str

    @classmethod
    def from_model(cls, reservation: Reservation) -> "ReservationResponse":
        return cls(
            id=reservation.id,
            provider_id=reservation.provider_id,
            requester_id=reservation.requester_id,
            date=format_date(reservation.date),
            time=format_time(reservation.time),
            status=reservation.status,
        )


# =============================================================================
# Rating Schemas
# =============================================================================


class RateRequest(CamelModel):
    """Request to rate a provider."""

    provider_id: str
    # Range checked by the service so out-of-range scores map to InvalidScore
    score: float
    comment: str | None = Field(None, max_length=2000)


class RateResponse(CamelModel):
    rating: float
    rating_count: int
