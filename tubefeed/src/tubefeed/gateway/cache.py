"""
Gateway response cache.

Stores normalized upstream responses keyed by route (``feed:{channelId}``,
``search:{query}``). An entry is live iff ``now - stored_at < ttl``; expired
entries read as absent and are evicted on that read.
"""

from dataclasses import dataclass, asdict
from typing import Callable, Optional
import time

from ..errors import StoreUnavailable
from ..logging_conf import get_logger
from ..store import KeyValueStore

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """A cached response body with its freshness bounds."""
    payload: str
    content_type: str
    stored_at: float
    ttl: float

    def is_live(self, now: float) -> bool:
        return now - self.stored_at < self.ttl

    def remaining(self, now: float) -> float:
        return max(0.0, self.stored_at + self.ttl - now)


class ResponseCache:
    """TTL-bounded cache over a shared key-value store."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for ``key``, or None. Store failures read as a miss."""
        try:
            raw = self.store.get(key)
        except StoreUnavailable as e:
            logger.warning("response_cache_unavailable", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            entry = CacheEntry(**raw)
        except TypeError:
            logger.warning("response_cache_corrupt", key=key)
            self._evict(key)
            return None

        if not entry.is_live(self._clock()):
            self._evict(key)
            return None

        return entry

    def put(self, key: str, payload: str, content_type: str, ttl: float) -> CacheEntry:
        """Store a response. Concurrent writers to one key: last write wins."""
        entry = CacheEntry(
            payload=payload,
            content_type=content_type,
            stored_at=self._clock(),
            ttl=ttl,
        )
        try:
            self.store.set(key, asdict(entry), ttl_seconds=ttl)
        except StoreUnavailable as e:
            logger.warning("response_cache_unavailable", key=key, error=str(e))
        return entry

    def _evict(self, key: str) -> None:
        try:
            self.store.delete(key)
        except StoreUnavailable as e:
            logger.debug("response_cache_evict_failed", key=key, error=str(e))
