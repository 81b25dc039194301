"""
In-process admission guard backed by one asyncio.Lock per room.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from app.services.interfaces.admission import AdmissionStrategy


class LocalAdmission(AdmissionStrategy):
    """
    Per-room asyncio locks.

    Use when:
    - A single worker process serves the API
    - Development and tests

    Locks are created on demand and dropped once no coroutine holds or waits
    for them, so the registry only ever contains rooms with admissions in
    flight.
    """

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def guard(self, room_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        self._users[room_id] = self._users.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[room_id] -= 1
            if self._users[room_id] == 0:
                del self._users[room_id]
                del self._locks[room_id]

    def active_rooms(self) -> set[int]:
        return set(self._locks)
