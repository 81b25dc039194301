from app.schemas.user import (
    UserCreate, UserLogin, UserUpdate, UserResponse, Token, AuthResponse,
    UserListResponse, UserStats,
)
from app.schemas.room import (
    RoomCreate, RoomUpdate, RoomResponse, RoomListResponse, RoomScheduleResponse,
)
from app.schemas.booking import (
    BookingCreate, BookingUpdate, BookingResponse, BookingDetailResponse,
    BookingListResponse, BookingDeleteResponse,
)

__all__ = [
    "UserCreate", "UserLogin", "UserUpdate", "UserResponse", "Token", "AuthResponse",
    "UserListResponse", "UserStats",
    "RoomCreate", "RoomUpdate", "RoomResponse", "RoomListResponse", "RoomScheduleResponse",
    "BookingCreate", "BookingUpdate", "BookingResponse", "BookingDetailResponse",
    "BookingListResponse", "BookingDeleteResponse",
]
