"""
Booking model representing a reservation of a room for a time window.

Key design decisions:
- Intervals are half-open [start_time, end_time): back-to-back bookings are legal
- Only `confirmed` bookings take part in conflict detection
- Composite index on (room_id, start_time, end_time) serves the overlap query
- CHECK constraints mirror the schema rules as a last line of defence
- On PostgreSQL the migration adds a partial exclusion constraint so two
  confirmed bookings of the same room can never overlap at the storage level
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime

BOOKING_STATUSES = ("confirmed", "cancelled", "completed")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    status = Column(String(20), nullable=False, default="confirmed")
    purpose = Column(String(200), nullable=True)
    number_of_participants = Column(Integer, nullable=False, default=1)

    room = relationship("Room", back_populates="bookings", lazy="joined")
    user = relationship("User", back_populates="bookings", lazy="joined")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_booking_window"),
        CheckConstraint("number_of_participants >= 1", name="check_booking_participants_positive"),
        CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'completed')", name="check_booking_status"
        ),
        Index("ix_bookings_room_window", "room_id", "start_time", "end_time"),
        Index("ix_bookings_start_time", "start_time"),
    )

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def is_active(self) -> bool:
        return self.status == "confirmed" and datetime.now(timezone.utc) < self.end_time

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, room={self.room_id}, user={self.user_id}, "
            f"{self.start_time}->{self.end_time}, status={self.status})>"
        )
