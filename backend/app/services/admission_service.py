"""
Distributed admission guard using Redis lease locks.
Implements AdmissionStrategy interface using Redis.

Fail-closed policy:
  If Redis is unreachable or the lock cannot be obtained in time, the
  admission is aborted with StoreUnavailable. An unguarded check-then-insert
  could admit two overlapping bookings, so "proceed without the lock" is
  never an option here.

Lease sizing:
  The lock lease (ADMISSION_LOCK_TTL_SECONDS) must exceed the admission
  timeout (ADMISSION_TIMEOUT_SECONDS). The booking service cancels the
  overlap query and the write at the timeout; only the final commit runs
  past it, and a commit outliving the lease is still caught by the
  exclusion constraint.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from redis.exceptions import LockError, RedisError

from app.core.config import get_settings
from app.core.exceptions import StoreUnavailable
from app.core.logging import get_logger
from app.core.metrics import redis_connection_errors
from app.infrastructure.redis_client import get_redis
from app.services.interfaces.admission import AdmissionStrategy

logger = get_logger(__name__)


class RedisAdmission(AdmissionStrategy):
    """
    Redis-based per-room lock.

    Use when:
    - Several API workers or hosts share one database
    - The storage backend has no exclusion constraint to fall back on
    """

    def __init__(self, lock_ttl: Optional[int] = None, wait_timeout: Optional[float] = None):
        settings = get_settings()
        self.lock_ttl = lock_ttl or settings.ADMISSION_LOCK_TTL_SECONDS
        self.wait_timeout = wait_timeout or settings.ADMISSION_TIMEOUT_SECONDS

    @staticmethod
    def lock_key(room_id: int) -> str:
        return f"admission:room:{room_id}"

    @asynccontextmanager
    async def guard(self, room_id: int) -> AsyncIterator[None]:
        client = await get_redis()
        if client is None:
            raise StoreUnavailable("Admission lock service is unavailable")

        lock = client.lock(
            self.lock_key(room_id),
            timeout=self.lock_ttl,
            blocking_timeout=self.wait_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            redis_connection_errors.inc()
            logger.error("admission_lock_error", room_id=room_id, error=str(e))
            raise StoreUnavailable("Admission lock service is unavailable")
        if not acquired:
            logger.warning("admission_lock_timeout", room_id=room_id)
            raise StoreUnavailable("Room is busy, please retry")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lease expired before release; the holder already finished
                logger.error("admission_lock_release_failed", room_id=room_id, error=str(e))
            except RedisError as e:
                redis_connection_errors.inc()
                logger.error("admission_lock_release_failed", room_id=room_id, error=str(e))
