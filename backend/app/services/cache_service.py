"""
Read-through response cache for room reads.

CACHING STRATEGY
================

What we cache:
  - Active room listing:        "rooms:list"
  - Single room:                "rooms:detail:{room_id}"
  - Upcoming schedule of a room: "rooms:schedule:{room_id}"

Backends:
  - Redis when enabled and reachable (shared across workers)
  - Otherwise an in-process TTL store, so a single instance still benefits

Invalidation strategy:
  - Room create/update/deactivate: delete "rooms:*"
  - Booking create/update/cancel/delete: delete "rooms:schedule:{room_id}"
  - TTL-based expiry as safety net; nothing is ever served past its TTL

Failure policy:
  - Any cache error is logged and the request falls through to the database.
    The cache never blocks or fails a request.

Why NOT cache bookings:
  - Booking reads are per-user and must reflect admissions immediately
  - The admission check always queries the database directly
"""

import fnmatch
import json
import time
from typing import Any, Awaitable, Callable, Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation
from app.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

ROOM_KEY_PATTERN = "rooms:*"


class MemoryCache:
    """Minimal TTL key/value store used when Redis is not available."""

    def __init__(self):
        self._entries: dict[str, tuple[float, str]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._entries[key] = (time.monotonic() + ttl, value)

    def delete_pattern(self, pattern: str) -> int:
        keys = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


memory_cache = MemoryCache()


def room_list_key() -> str:
    return "rooms:list"


def room_detail_key(room_id: int) -> str:
    return f"rooms:detail:{room_id}"


def room_schedule_key(room_id: int) -> str:
    return f"rooms:schedule:{room_id}"


async def get_cached(key: str) -> Optional[dict]:
    client = await get_redis()
    try:
        if client:
            data = await client.get(key)
        else:
            data = memory_cache.get(key)
    except Exception as e:
        record_cache_operation("get", "error")
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    if data:
        record_cache_operation("get", "hit")
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    record_cache_operation("get", "miss")
    logger.debug("cache_miss", key=key)
    return None


async def set_cached(key: str, data: dict, ttl: Optional[int] = None) -> None:
    ttl = ttl or settings.REDIS_CACHE_TTL
    payload = json.dumps(data, default=str)
    client = await get_redis()
    try:
        if client:
            await client.setex(key, ttl, payload)
        else:
            memory_cache.setex(key, ttl, payload)
        record_cache_operation("set", "ok")
        logger.debug("cache_set", key=key, ttl=ttl)
    except Exception as e:
        record_cache_operation("set", "error")
        logger.error("cache_set_error", key=key, error=str(e))


async def read_through(
    key: str,
    loader: Callable[[], Awaitable[dict]],
    ttl: Optional[int] = None,
) -> tuple[dict, bool]:
    """
    Return (data, cached). On a miss the loader runs and its result is stored.
    Loader errors propagate; cache errors do not.
    """
    cached = await get_cached(key)
    if cached is not None:
        return cached, True

    data = await loader()
    await set_cached(key, data, ttl)
    return data, False


async def invalidate(pattern: str) -> None:
    """Delete every cached key matching a glob pattern."""
    deleted = memory_cache.delete_pattern(pattern)

    client = await get_redis()
    if client:
        try:
            async for key in client.scan_iter(match=pattern, count=100):
                await client.delete(key)
                deleted += 1
        except Exception as e:
            record_cache_operation("invalidate", "error")
            logger.error("cache_invalidation_error", pattern=pattern, error=str(e))
            return

    record_cache_operation("invalidate", "ok")
    logger.info("cache_invalidated", pattern=pattern, keys_deleted=deleted)


async def invalidate_room_cache() -> None:
    await invalidate(ROOM_KEY_PATTERN)


async def invalidate_room_schedule(room_id: int) -> None:
    await invalidate(room_schedule_key(room_id))


async def get_cache_stats() -> dict[str, Any]:
    """Cache statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "memory", "keys": len(memory_cache)}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
