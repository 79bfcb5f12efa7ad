from __future__ import annotations

import asyncio
import gzip
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from cinevibe_core.cache_keys import cache_key  # noqa: F401
from cinevibe_core.config import RESULT_CACHE_NAMESPACE, RESULT_CACHE_TTL_SEC

Compute = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    ttl_sec: float

    def expired(self, now: float) -> bool:
        return (now - self.created_at) >= self.ttl_sec


class ResultCache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, payload: Any, ttl_sec: float | None = None) -> None: ...

    async def clear(self) -> None: ...

    async def get_or_compute(
        self, key: str, compute: Compute, ttl_sec: float | None = None
    ) -> Any: ...

    async def aclose(self) -> None: ...


_LEADER_GONE = object()


class _SingleFlight:
    """
    In-flight registry: concurrent get_or_compute calls for one key await the
    same computation. Failures are not cached; every waiter sees the error.
    If the computing caller is cancelled, one of the waiters takes over.
    """

    def __init__(self) -> None:
        self._inflight: Dict[str, asyncio.Future] = {}

    async def get_or_compute(
        self, key: str, compute: Compute, ttl_sec: float | None = None
    ) -> Any:
        while True:
            hit = await self.get(key)
            if hit is not None:
                return hit
            pending = self._inflight.get(key)
            if pending is None:
                break
            value = await asyncio.shield(pending)
            if value is not _LEADER_GONE:
                return value

        fut = asyncio.get_running_loop().create_future()
        self._inflight[key] = fut
        try:
            value = await compute()
        except Exception as exc:
            fut.set_exception(exc)
            fut.exception()  # mark retrieved when nobody else was waiting
            raise
        else:
            # waiters are released before the cache write
            fut.set_result(value)
            await self.put(key, value, ttl_sec)
            return value
        finally:
            if not fut.done():
                fut.set_result(_LEADER_GONE)
            self._inflight.pop(key, None)


class InMemoryResultCache(_SingleFlight):
    """
    Process-local TTL cache. Expiry is checked lazily on read; ``sweep()`` drops
    every expired entry at once. A lock guards the table so threaded servers
    don't tear reads or lose writes.
    """

    def __init__(
        self,
        *,
        ttl_sec: float = RESULT_CACHE_TTL_SEC,
        max_entries: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        super().__init__()
        self._ttl = float(ttl_sec)
        self._max = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(now):
                del self._entries[key]
                return None
            return entry.payload

    async def put(self, key: str, payload: Any, ttl_sec: float | None = None) -> None:
        entry = CacheEntry(
            key=key,
            payload=payload,
            created_at=self._clock(),
            ttl_sec=float(ttl_sec or self._ttl),
        )
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            if self._max:
                while len(self._entries) > self._max:
                    # dicts keep insertion order; first key is the oldest write
                    del self._entries[next(iter(self._entries))]

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.expired(now)]
            for k in stale:
                del self._entries[k]
        return len(stale)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def aclose(self) -> None:
        await self.clear()


class RedisResultCache(_SingleFlight):
    """
    Redis-backed cache with gzip'd JSON payloads; Redis expires keys itself.
    Decode failures and Redis errors read as misses.
    """

    def __init__(
        self,
        *,
        client: Redis,
        namespace: str = RESULT_CACHE_NAMESPACE,
        ttl_sec: float = RESULT_CACHE_TTL_SEC,
        compression_level: int = 5,
    ) -> None:
        super().__init__()
        self._r = client
        self._ns = namespace
        self._ttl = int(ttl_sec)
        self._level = int(compression_level)

    def _k(self, key: str) -> str:
        return f"{self._ns}{key}"

    def _serialize(self, payload: Any) -> bytes:
        raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode(
            "utf-8"
        )
        return gzip.compress(raw, compresslevel=self._level)

    def _deserialize(self, blob: bytes) -> Any | None:
        try:
            return json.loads(gzip.decompress(blob).decode("utf-8"))
        except (OSError, EOFError, ValueError):
            return None

    async def get(self, key: str) -> Any | None:
        try:
            blob = await self._r.get(self._k(key))
        except (RedisError, RuntimeError):
            return None
        if not blob:
            return None
        return self._deserialize(blob)

    async def put(self, key: str, payload: Any, ttl_sec: float | None = None) -> None:
        try:
            await self._r.set(
                self._k(key), self._serialize(payload), ex=int(ttl_sec or self._ttl)
            )
        except (RedisError, RuntimeError):
            # a failed write only costs a recompute later
            return

    async def clear(self) -> None:
        keys = [k async for k in self._r.scan_iter(match=f"{self._ns}*")]
        if keys:
            await self._r.delete(*keys)

    async def aclose(self) -> None:
        try:
            await self._r.aclose()
        except (RedisError, RuntimeError):
            pass


def make_result_cache(
    *,
    use_redis: bool,
    redis_url: str | None = None,
    namespace: str = RESULT_CACHE_NAMESPACE,
    ttl_sec: float = RESULT_CACHE_TTL_SEC,
    max_entries: int | None = None,
) -> ResultCache:
    if use_redis:
        if not redis_url:
            raise RuntimeError("use_redis_result_cache is set but REDIS_URL is missing")
        from .redis_infra import make_redis_client

        return RedisResultCache(
            client=make_redis_client(redis_url), namespace=namespace, ttl_sec=ttl_sec
        )
    return InMemoryResultCache(ttl_sec=ttl_sec, max_entries=max_entries)
