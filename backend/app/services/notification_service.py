"""
Booking notification fan-out.

Every booking lifecycle change is published to up to three channels:

  room:{room_id}  - clients watching one room's availability
  admin           - staff dashboards (includes who made the booking)
  global          - everyone (no requester identity)

Events: booking_created, booking_updated, booking_deleted.

Delivery is best-effort. The Notifier runs after the booking transaction has
committed and swallows every sink failure after logging it, so a broken
channel can never undo or fail a booking.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_notification
from app.infrastructure.redis_client import get_redis

logger = get_logger(__name__)

ADMIN_CHANNEL = "admin"
GLOBAL_CHANNEL = "global"


def room_channel(room_id: int) -> str:
    return f"room:{room_id}"


class NotificationSink(ABC):
    @abstractmethod
    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        """Deliver one event to one channel. May raise; callers handle it."""


class InMemoryNotificationSink(NotificationSink):
    """
    In-process pub/sub. Subscribers get a bounded queue per channel; a
    subscriber that stops draining its queue loses events rather than
    slowing publishers down.
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    def subscribe(self, channel: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.setdefault(channel, set()).add(queue)
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue) -> None:
        subscribers = self._subscribers.get(channel)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[channel]

    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        for queue in list(self._subscribers.get(channel, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("notification_dropped", channel=channel, event_type=event.get("type"))


class RedisNotificationSink(NotificationSink):
    """Publishes JSON events with Redis PUBLISH on "notifications:{channel}"."""

    prefix = "notifications:"

    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        client = await get_redis()
        if client is None:
            raise ConnectionError("Redis is not available")
        await client.publish(self.prefix + channel, json.dumps(event, default=str))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class Notifier:
    """Builds booking events and fans them out through a sink."""

    def __init__(self, sink: NotificationSink):
        self.sink = sink

    async def _send(self, channel: str, event: dict[str, Any]) -> None:
        try:
            await self.sink.publish(channel, event)
        except Exception as e:
            record_notification(event["type"], ok=False)
            logger.warning(
                "notification_failed",
                channel=channel,
                event_type=event["type"],
                error=str(e),
            )
            return
        record_notification(event["type"], ok=True)

    async def booking_created(self, booking, room_name: str, username: str) -> None:
        summary = {"id": booking.id, "room": room_name}
        window = {
            "start_time": booking.start_time.isoformat(),
            "end_time": booking.end_time.isoformat(),
        }
        timestamp = _timestamp()

        await self._send(ADMIN_CHANNEL, {
            "type": "booking_created",
            "message": "New booking created",
            "booking": {**summary, "user": username, **window},
            "timestamp": timestamp,
        })
        await self._send(room_channel(booking.room_id), {
            "type": "booking_created",
            "message": "Room has a new booking",
            "room": {"room_id": booking.room_id, "room_name": room_name},
            "booking": {**summary, **window},
            "timestamp": timestamp,
        })
        await self._send(GLOBAL_CHANNEL, {
            "type": "booking_created",
            "message": "New booking created",
            "booking": summary,
            "timestamp": timestamp,
        })

    async def booking_updated(
        self,
        booking,
        room_name: str,
        username: str,
        previous_room_id: Optional[int] = None,
    ) -> None:
        summary = {"id": booking.id, "room": room_name, "status": booking.status}
        window = {
            "start_time": booking.start_time.isoformat(),
            "end_time": booking.end_time.isoformat(),
        }
        timestamp = _timestamp()

        await self._send(GLOBAL_CHANNEL, {
            "type": "booking_updated",
            "message": "Booking updated",
            "booking": summary,
            "timestamp": timestamp,
        })
        await self._send(ADMIN_CHANNEL, {
            "type": "booking_updated",
            "message": "Booking updated",
            "booking": {**summary, "user": username, **window},
            "timestamp": timestamp,
        })
        room_ids = {booking.room_id}
        if previous_room_id is not None:
            room_ids.add(previous_room_id)
        for room_id in sorted(room_ids):
            await self._send(room_channel(room_id), {
                "type": "booking_updated",
                "message": "Room booking updated",
                "booking": {**summary, **window},
                "timestamp": timestamp,
            })

    async def booking_deleted(
        self,
        booking_id: int,
        room_id: int,
        room_name: str,
        username: str,
    ) -> None:
        timestamp = _timestamp()
        summary = {"id": booking_id, "room": room_name}

        await self._send(GLOBAL_CHANNEL, {
            "type": "booking_deleted",
            "message": "Booking deleted",
            "booking": summary,
            "timestamp": timestamp,
        })
        await self._send(ADMIN_CHANNEL, {
            "type": "booking_deleted",
            "message": "Booking deleted",
            "booking": {**summary, "user": username},
            "timestamp": timestamp,
        })
        await self._send(room_channel(room_id), {
            "type": "booking_deleted",
            "message": "Room booking removed",
            "booking": summary,
            "timestamp": timestamp,
        })


def build_sink() -> NotificationSink:
    if get_settings().NOTIFICATION_BACKEND == "redis":
        return RedisNotificationSink()
    return InMemoryNotificationSink()


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Notifier singleton. Also used as a FastAPI dependency."""
    global _notifier
    if _notifier is None:
        _notifier = Notifier(build_sink())
    return _notifier
