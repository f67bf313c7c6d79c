"""Error taxonomy for the scheduling core.

Every failure raised by the services is a ``SchedulingError`` subclass
carrying a stable ``code``. Callers distinguish retryable failures
(``TransientError``) from requests that are invalid as submitted.
"""


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    code: str = "SchedulingError"
    retryable: bool = False

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        """Return a serializable representation for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class ValidationError(SchedulingError):
    """Raised for malformed or out-of-range input (dates, times, scores)."""

    code = "ValidationError"


class NotFoundError(SchedulingError):
    """Raised when a provider, reservation or window does not exist."""

    code = "NotFound"


class CapacityError(SchedulingError):
    """Raised when no open capacity matches a booking request.

    The underlying availability has to be re-queried before retrying.
    """

    code = "CapacityError"


class ConflictError(SchedulingError):
    """Raised when a mutation conflicts with existing ledger state."""

    code = "Conflict"


class TransientError(SchedulingError):
    """Raised when persistence fails; the whole attempt may be retried."""

    code = "PersistenceFailure"
    retryable = True


# Error codes
INVALID_DATE = "InvalidDate"
INVALID_TIME = "InvalidTime"
INVALID_SCORE = "InvalidScore"
NO_VALID_SLOTS = "NoValidSlots"
PROVIDER_NOT_FOUND = "ProviderNotFound"
RESERVATION_NOT_FOUND = "NotFound"
WINDOW_NOT_FOUND = "WindowNotFound"
NO_AVAILABILITY = "NoAvailability"
NO_MATCHING_SLOT = "NoMatchingSlot"
SLOT_FULL = "SlotFull"
DUPLICATE_SLOT = "DuplicateSlot"
WINDOW_HAS_RESERVATIONS = "WindowHasReservations"
CAPACITY_BELOW_BOOKINGS = "CapacityBelowBookings"
INVALID_CAPACITY = "InvalidCapacity"
