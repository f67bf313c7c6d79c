"""Translation of scheduling errors to HTTP responses."""

from fastapi import HTTPException, status

from medislot.core.errors import (
    CapacityError,
    ConflictError,
    NotFoundError,
    SchedulingError,
    TransientError,
    ValidationError,
)

# Capacity failures are client errors: the request cannot succeed as sent
STATUS_BY_ERROR: dict[type[SchedulingError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    CapacityError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    TransientError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RETRY_AFTER_SECONDS = "1"


def to_http_exception(exc: SchedulingError) -> HTTPException:
    """Build the HTTPException for a scheduling error.

    The detail carries the error code and whether retrying the same
    request can help.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, mapped in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            status_code = mapped
            break

    headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
    return HTTPException(status_code=status_code, detail=exc.to_dict(), headers=headers)
