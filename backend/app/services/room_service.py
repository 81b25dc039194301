"""
Room service handling CRUD operations.

Rooms are soft-deleted: deactivation clears `is_active`, which removes the
room from listings and from admission, while every booking that references
it stays readable.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateResource, NotFound
from app.models.room import Room
from app.schemas.room import RoomCreate, RoomUpdate
from app.core.logging import get_logger

logger = get_logger(__name__)


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Room.id).where(Room.name == name)
    if exclude_id is not None:
        query = query.where(Room.id != exclude_id)
    if (await db.execute(query)).first():
        raise DuplicateResource(f"A room named '{name}' already exists", field="name")


async def _commit(db: AsyncSession, name: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with another request using the same name
        await db.rollback()
        raise DuplicateResource(f"A room named '{name}' already exists", field="name")


async def create_room(db: AsyncSession, room_data: RoomCreate) -> Room:
    await _ensure_unique_name(db, room_data.name)

    room = Room(
        name=room_data.name,
        capacity=room_data.capacity,
        type=room_data.type,
        description=room_data.description,
        amenities=room_data.amenities,
        hourly_rate=room_data.hourly_rate,
        is_active=True,
    )
    db.add(room)
    await _commit(db, room.name)
    await db.refresh(room)

    logger.info("room_created", room_id=room.id, name=room.name, capacity=room.capacity)
    return room


async def get_room(db: AsyncSession, room_id: int) -> Room:
    """Get a single room by ID, active or not."""
    result = await db.execute(select(Room).where(Room.id == room_id))
    room = result.scalar_one_or_none()

    if not room:
        raise NotFound(f"Room {room_id} not found")
    return room


async def list_active_rooms(db: AsyncSession) -> list[Room]:
    result = await db.execute(
        select(Room).where(Room.is_active.is_(True)).order_by(Room.name.asc())
    )
    return list(result.scalars().all())


async def update_room(db: AsyncSession, room_id: int, room_data: RoomUpdate) -> Room:
    """
    Partial update. Lowering capacity does not touch existing bookings;
    capacity is only enforced when a booking is admitted or edited.
    """
    room = await get_room(db, room_id)
    changes = room_data.model_dump(exclude_unset=True)

    if changes.get("name") and changes["name"] != room.name:
        await _ensure_unique_name(db, changes["name"], exclude_id=room.id)

    for field, value in changes.items():
        if value is None and field not in ("description",):
            continue
        setattr(room, field, value)

    await _commit(db, room.name)
    await db.refresh(room)

    logger.info("room_updated", room_id=room.id, fields=sorted(changes))
    return room


async def deactivate_room(db: AsyncSession, room_id: int) -> Room:
    room = await get_room(db, room_id)
    room.is_active = False
    await db.commit()
    await db.refresh(room)

    logger.info("room_deactivated", room_id=room.id, name=room.name)
    return room
