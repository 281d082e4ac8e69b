from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol

import redis

from app.core.config import settings

_LOG = logging.getLogger("app.rate_limit")


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    current_value: int


class RateLimiter(Protocol):
    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        ...

    def reset(self, key: str) -> None:
        ...


def _namespaced(key: str) -> str:
    return f"{settings.APP_NAME}:rl:{key}"


class InMemoryRateLimiter:
    """Fixed-window counters for a single process."""

    def __init__(self):
        self._windows: dict[str, tuple[int, datetime]] = {}
        self._lock = Lock()

    def _purge_expired(self, now: datetime) -> None:
        stale = [key for key, (_, expires_at) in self._windows.items() if expires_at <= now]
        for key in stale:
            del self._windows[key]

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        now = datetime.now(timezone.utc)
        full_key = _namespaced(key)
        with self._lock:
            self._purge_expired(now)
            count, expires_at = self._windows.get(
                full_key, (0, now + timedelta(seconds=max(int(window_seconds), 1)))
            )
            count += 1
            self._windows[full_key] = (count, expires_at)
        retry_after = max(0, int((expires_at - now).total_seconds()))
        return RateLimitResult(allowed=count <= limit, retry_after_seconds=retry_after, current_value=count)

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(_namespaced(key), None)


class RedisRateLimiter:
    def __init__(self, client: redis.Redis):
        self.client = client

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        full_key = _namespaced(key)
        window = int(max(window_seconds, 1))
        pipe = self.client.pipeline()
        pipe.incr(full_key)
        pipe.expire(full_key, window, nx=True)
        pipe.ttl(full_key)
        count, _, ttl = pipe.execute()
        ttl = int(ttl)
        if ttl < 0:
            ttl = window
        return RateLimitResult(allowed=int(count) <= limit, retry_after_seconds=ttl, current_value=int(count))

    def reset(self, key: str) -> None:
        self.client.delete(_namespaced(key))


_cached_limiter: RateLimiter | None = None


def _build_limiter() -> RateLimiter:
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=0.4,
            socket_connect_timeout=0.4,
        )
        client.ping()
        return RedisRateLimiter(client)
    except Exception:
        _LOG.warning("Redis limiter unavailable at %s; falling back to in-memory limiter", settings.REDIS_URL)
        return InMemoryRateLimiter()


def get_rate_limiter() -> RateLimiter:
    global _cached_limiter
    if _cached_limiter is None:
        _cached_limiter = _build_limiter()
    return _cached_limiter


def reset_rate_limiter_for_tests() -> None:
    global _cached_limiter
    _cached_limiter = None
