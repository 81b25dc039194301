"""
Room endpoints with read-through caching on public reads.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import CurrentUser, require_admin
from app.db.session import get_db
from app.schemas.room import (
    MessageResponse,
    RoomCreate,
    RoomListResponse,
    RoomResponse,
    RoomScheduleResponse,
    RoomUpdate,
    ScheduleSlot,
)
from app.services.booking_service import get_room_schedule
from app.services.cache_service import (
    invalidate_room_cache,
    read_through,
    room_detail_key,
    room_list_key,
    room_schedule_key,
)
from app.services.room_service import (
    create_room,
    deactivate_room,
    get_room,
    list_active_rooms,
    update_room,
)

settings = get_settings()
router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("/", response_model=RoomListResponse)
async def list_rooms_endpoint(db: AsyncSession = Depends(get_db)):
    """Active rooms sorted by name. Cached; invalidated on any room change."""

    async def load() -> dict:
        rooms = await list_active_rooms(db)
        return {
            "rooms": [RoomResponse.model_validate(r).model_dump(mode="json") for r in rooms],
            "count": len(rooms),
        }

    data, cached = await read_through(room_list_key(), load, ttl=settings.ROOM_LIST_CACHE_TTL)
    return RoomListResponse(**data, cached=cached)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room_endpoint(room_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single room by ID, including deactivated rooms."""

    async def load() -> dict:
        room = await get_room(db, room_id)
        return RoomResponse.model_validate(room).model_dump(mode="json")

    data, _ = await read_through(room_detail_key(room_id), load)
    return RoomResponse(**data)


@router.get("/{room_id}/schedule", response_model=RoomScheduleResponse)
async def get_room_schedule_endpoint(room_id: int, db: AsyncSession = Depends(get_db)):
    """
    Upcoming confirmed time slots of a room, without requester details.
    Cached; invalidated whenever a booking of the room changes.
    """

    async def load() -> dict:
        room = await get_room(db, room_id)
        bookings = await get_room_schedule(db, room.id)
        return {
            "room_id": room.id,
            "room_name": room.name,
            "slots": [
                ScheduleSlot(
                    booking_id=b.id, start_time=b.start_time, end_time=b.end_time
                ).model_dump(mode="json")
                for b in bookings
            ],
        }

    data, cached = await read_through(room_schedule_key(room_id), load)
    return RoomScheduleResponse(**data, cached=cached)


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room_endpoint(
    room_data: RoomCreate,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    room = await create_room(db, room_data)
    await invalidate_room_cache()
    return room


@router.put("/{room_id}", response_model=RoomResponse)
async def update_room_endpoint(
    room_id: int,
    room_data: RoomUpdate,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    room = await update_room(db, room_id, room_data)
    await invalidate_room_cache()
    return room


@router.delete("/{room_id}", response_model=MessageResponse)
async def delete_room_endpoint(
    room_id: int,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the room stops accepting bookings, existing bookings remain."""
    await deactivate_room(db, room_id)
    await invalidate_room_cache()
    return MessageResponse(message="Room has been deactivated")
