from __future__ import annotations

from typing import Sequence, Type

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

# Errors that indicate a stale / broken connection and are safe to retry.
# RuntimeError covers uvloop's "TCPTransport closed" when a pooled
# connection is silently dropped by the server or a network proxy.
_RETRY_ERRORS: Sequence[Type[Exception]] = (
    RedisConnectionError,
    RedisTimeoutError,
    ConnectionResetError,
    OSError,
    RuntimeError,
)

_RETRY = Retry(ExponentialBackoff(cap=0.5, base=0.05), retries=3)


def make_redis_client(redis_url: str) -> Redis:
    """Async client returning raw bytes (the result cache stores gzip blobs)."""
    return redis.from_url(
        redis_url,
        decode_responses=False,
        health_check_interval=10,
        socket_keepalive=True,
        socket_connect_timeout=2,
        socket_timeout=5,
        retry=_RETRY,
        retry_on_error=list(_RETRY_ERRORS),
    )
