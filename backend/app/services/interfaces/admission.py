"""
Admission guard strategy interface.
Allows swapping between different per-room mutual exclusion mechanisms.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class AdmissionStrategy(ABC):
    """
    Interface for per-room admission guards.

    The booking service holds the guard for a room while it runs the overlap
    query, inserts the booking and commits. Two admissions for the same room
    are therefore serialized; admissions for different rooms never wait on
    each other.

    Implementations:
    - LocalAdmission: asyncio locks, valid within one process
    - RedisAdmission: Redis lease locks, valid across workers and hosts
    """

    @abstractmethod
    def guard(self, room_id: int) -> AsyncContextManager[None]:
        """
        Exclusive section for admissions on one room.

        Args:
            room_id: Room whose bookings are about to be checked and written

        Raises:
            StoreUnavailable: the guard itself could not be obtained
        """
