"""
Pydantic schemas for booking-related request/response validation.

Only field shape and ranges are checked here. Time-window, capacity and
availability rules depend on the clock and the room, so they run in
booking_service in a fixed order.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.room import RoomSummary


class BookingCreate(BaseModel):
    room_id: int
    start_time: datetime
    end_time: datetime
    purpose: Optional[str] = Field(None, max_length=200)
    number_of_participants: int = Field(default=1, ge=1)


class BookingUpdate(BaseModel):
    room_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    purpose: Optional[str] = Field(None, max_length=200)
    number_of_participants: Optional[int] = Field(None, ge=1)


class BookingOwner(BaseModel):
    id: int
    username: str
    email: str

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    room_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    status: str
    purpose: Optional[str]
    number_of_participants: int
    duration_hours: float
    is_active: bool
    room: Optional[RoomSummary] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    user: Optional[BookingOwner] = None


class BookingListResponse(BaseModel):
    bookings: list[BookingDetailResponse]
    count: int


class BookingDeleteResponse(BaseModel):
    message: str
    booking_id: int
