"""Session stores — where session references live between requests.

Learn: The session manager only needs four operations (put/get/delete/ping),
so the backing store is swappable:

- RedisSessionStore: production. Expiry is Redis' job (SET ... EX).
- MemorySessionStore: fallback when Redis is unreachable, and for tests.
  Expired entries are dropped when read.

Values are small JSON dicts, e.g. {"user_id": "..."}.
"""

import asyncio
import json
import time
from typing import Any, Callable, Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from linkauth.errors import StoreError

KEY_PREFIX = "linkauth:session:"


class SessionStore(Protocol):
    """Protocol every session backend implements."""

    async def put(self, ref: str, data: dict[str, Any], ttl_seconds: int) -> None:
        ...

    async def get(self, ref: str) -> Optional[dict[str, Any]]:
        """Return the stored data, or None if missing or expired."""
        ...

    async def delete(self, ref: str) -> None:
        ...

    async def ping(self) -> bool:
        ...


class MemorySessionStore:
    """In-process session storage with lazy expiry.

    Learn: Expired entries are dropped when read, and every put sweeps
    out whatever has expired since, so sessions abandoned without a
    logout don't pile up in memory.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    async def put(self, ref: str, data: dict[str, Any], ttl_seconds: int) -> None:
        async with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[ref] = (now + ttl_seconds, dict(data))

    def _purge_expired(self, now: float) -> None:
        # Caller holds _lock.
        expired = [ref for ref, (expires_at, _) in self._entries.items() if expires_at <= now]
        for ref in expired:
            del self._entries[ref]

    async def get(self, ref: str) -> Optional[dict[str, Any]]:
        async with self._lock:
            entry = self._entries.get(ref)
            if entry is None:
                return None
            expires_at, data = entry
            if self._clock() >= expires_at:
                del self._entries[ref]
                return None
            return dict(data)

    async def delete(self, ref: str) -> None:
        async with self._lock:
            self._entries.pop(ref, None)

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)


class RedisSessionStore:
    """Redis-backed sessions. One key per session, TTL set on write.

    Redis failures surface as StoreError, same as database failures.
    """

    def __init__(self, redis: aioredis.Redis):
        self._redis = redis

    @classmethod
    async def connect(cls, url: str) -> "RedisSessionStore":
        """Connect and verify with PING. Raises if Redis is unreachable."""
        client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
        await client.ping()
        return cls(client)

    async def put(self, ref: str, data: dict[str, Any], ttl_seconds: int) -> None:
        try:
            await self._redis.set(KEY_PREFIX + ref, json.dumps(data), ex=ttl_seconds)
        except RedisError as e:
            raise StoreError("session put failed") from e

    async def get(self, ref: str) -> Optional[dict[str, Any]]:
        try:
            raw = await self._redis.get(KEY_PREFIX + ref)
        except RedisError as e:
            raise StoreError("session get failed") from e
        if raw is None:
            return None
        return json.loads(raw)

    async def delete(self, ref: str) -> None:
        try:
            await self._redis.delete(KEY_PREFIX + ref)
        except RedisError as e:
            raise StoreError("session delete failed") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._redis.aclose()
