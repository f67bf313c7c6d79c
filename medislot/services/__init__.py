"""Scheduling services."""

from medislot.services.booking import BookingService
from medislot.services.ledger import LedgerService
from medislot.services.providers import ProviderService
from medislot.services.ratings import RatingService

__all__ = [
    "BookingService",
    "LedgerService",
    "ProviderService",
    "RatingService",
]
