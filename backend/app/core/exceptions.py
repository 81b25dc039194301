"""
API error taxonomy.

Each error kind is an HTTPException so services can raise it directly and
FastAPI renders it. The body carries a stable `error` code next to the
human-readable message:

    {"detail": {"error": "booking_conflict", "message": "..."}}
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class BookingAPIError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(
        self,
        message: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        **extra: Any,
    ):
        self.message = message or self.default_message
        detail = {"error": self.code, "message": self.message, **extra}
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class TimeWindowInvalid(BookingAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "time_window_invalid"
    default_message = "Invalid booking time window"


class CapacityExceeded(BookingAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "capacity_exceeded"
    default_message = "Number of participants exceeds room capacity"


class RoomUnavailable(BookingAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "room_unavailable"
    default_message = "Room not found or not available"


class BookingConflict(BookingAPIError):
    status_code = status.HTTP_409_CONFLICT
    code = "booking_conflict"
    default_message = "Room is already booked for the requested time"


class BookingNotModifiable(BookingAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "booking_not_modifiable"
    default_message = "Booking can no longer be modified"


class DuplicateResource(BookingAPIError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate"
    default_message = "Resource already exists"


class NotFound(BookingAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class Forbidden(BookingAPIError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "You do not have permission to perform this action"


class StoreUnavailable(BookingAPIError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"
    default_message = "Storage is temporarily unavailable, please retry"


class Unauthenticated(BookingAPIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Not authenticated"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"}, **extra)
