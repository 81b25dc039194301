"""
Room model: a bookable coworking resource.

Key design decisions:
- Rooms are never hard-deleted through the API; `is_active` is cleared instead
  so existing bookings keep a valid room reference
- `is_active` is indexed because every public listing filters on it
- Capacity bounds are enforced in the schema layer and again by CHECK constraints
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Float, Index, Integer, JSON, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

ROOM_TYPES = ("workspace", "conference")


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    capacity = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False, default="workspace")
    description = Column(String(500), nullable=True)
    amenities = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    hourly_rate = Column(Float, nullable=False, default=0)

    bookings = relationship("Booking", back_populates="room", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity >= 1 AND capacity <= 100", name="check_room_capacity_range"),
        CheckConstraint("hourly_rate >= 0", name="check_room_hourly_rate_non_negative"),
        CheckConstraint("type IN ('workspace', 'conference')", name="check_room_type"),
        Index("ix_rooms_is_active", "is_active"),
        Index("ix_rooms_type", "type"),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name={self.name}, capacity={self.capacity}, active={self.is_active})>"
