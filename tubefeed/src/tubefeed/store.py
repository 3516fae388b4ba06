"""
Shared key-value stores backing the gateway's response cache and rate limiter.

Values are JSON-compatible. Both stores expire keys on their own; callers
still apply their own freshness rules on top. Any backend failure surfaces as
StoreUnavailable so callers can decide to fail open.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
import json
import threading
import time

import redis

from .errors import StoreUnavailable
from .logging_conf import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Minimal expiring key-value interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value that expires after ttl_seconds. Last write wins."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""


class MemoryStore(KeyValueStore):
    """
    In-process store. Expired keys are evicted lazily on read.

    A lock makes each single get/set atomic; read-then-write sequences across
    calls are best effort, same as with a remote store.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class RedisStore(KeyValueStore):
    """
    Redis-backed store shared between gateway processes.

    A value that does not decode as JSON (written by something else under the
    same key) reads as a miss.
    """

    def __init__(
        self,
        url: str,
        socket_timeout: float = 2.0,
        client: Optional[redis.Redis] = None,
    ):
        self._client = client if client is not None else redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._client.get(key)
        except redis.RedisError as e:
            raise StoreUnavailable(f"redis get failed: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("store_value_undecodable", key=key)
            return None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        try:
            self._client.set(key, json.dumps(value), px=max(1, int(ttl_seconds * 1000)))
        except redis.RedisError as e:
            raise StoreUnavailable(f"redis set failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise StoreUnavailable(f"redis delete failed: {e}") from e


def create_store(redis_url: Optional[str] = None) -> KeyValueStore:
    """Build the configured store: Redis when a URL is given, memory otherwise."""
    if redis_url:
        logger.info("store_backend", backend="redis")
        return RedisStore(redis_url)
    logger.info("store_backend", backend="memory")
    return MemoryStore()
