"""
Pydantic schemas for room-related request/response validation.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional
from pydantic import BaseModel, Field, StringConstraints

RoomType = Literal["workspace", "conference"]

# Whitespace is stripped before the length bounds are checked
RoomName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
RoomDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]


class RoomCreate(BaseModel):
    name: RoomName
    capacity: int = Field(..., ge=1, le=100)
    type: RoomType = "workspace"
    description: Optional[RoomDescription] = None
    amenities: list[str] = Field(default_factory=list)
    hourly_rate: float = Field(default=0, ge=0)


class RoomUpdate(BaseModel):
    name: Optional[RoomName] = None
    capacity: Optional[int] = Field(None, ge=1, le=100)
    type: Optional[RoomType] = None
    description: Optional[RoomDescription] = None
    amenities: Optional[list[str]] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None


class RoomResponse(BaseModel):
    id: int
    name: str
    capacity: int
    type: str
    description: Optional[str]
    amenities: list[str]
    is_active: bool
    hourly_rate: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoomSummary(BaseModel):
    id: int
    name: str
    capacity: int
    type: str

    model_config = {"from_attributes": True}


class RoomListResponse(BaseModel):
    rooms: list[RoomResponse]
    count: int
    cached: bool = False


class ScheduleSlot(BaseModel):
    booking_id: int
    start_time: datetime
    end_time: datetime


class RoomScheduleResponse(BaseModel):
    room_id: int
    room_name: str
    slots: list[ScheduleSlot]
    cached: bool = False


class MessageResponse(BaseModel):
    message: str
