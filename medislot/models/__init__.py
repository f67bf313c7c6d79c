"""Database models for MediSlot."""

from medislot.models.availability import AvailabilityWindow, Slot
from medislot.models.provider import Provider
from medislot.models.rating import RatingEntry
from medislot.models.reservation import Reservation, ReservationStatus

__all__ = [
    "AvailabilityWindow",
    "Provider",
    "RatingEntry",
    "Reservation",
    "ReservationStatus",
    "Slot",
]
