"""
Client-side cache of the last aggregated feed.

One entry at a time, keyed by the active follow-set plus a variant naming the
settings that shaped the feed (short-form filtering). A read for a different
follow-set or variant, or after the TTL has elapsed, is a miss; stale entries are
dropped on that read.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional
import time

from ..logging_conf import get_logger
from ..models import Channel, FeedItem
from .storage import FEED_CACHE_KEY, Storage

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


def follow_key(channels: Iterable[Channel], variant: str = "") -> str:
    """Order-insensitive key for a follow-set, qualified by ``variant``."""
    key = ",".join(sorted({c.id for c in channels}))
    return f"{key}|{variant}" if variant else key


@dataclass
class CachedFeed:
    """An aggregated feed with its freshness bounds."""
    key: str
    items: list[FeedItem]
    stored_at: float
    ttl: float

    def is_live(self, now: float) -> bool:
        return now - self.stored_at < self.ttl

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "items": [item.to_dict() for item in self.items],
            "stored_at": self.stored_at,
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CachedFeed":
        return cls(
            key=data["key"],
            items=[FeedItem.from_dict(i) for i in data["items"]],
            stored_at=float(data["stored_at"]),
            ttl=float(data["ttl"]),
        )


class FeedCache:
    """Time-bounded cache of the last aggregated feed."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        variant: str = "",
    ):
        """
        Initialize feed cache.

        Args:
            storage: Optional persistence; a fresh entry survives restarts
            ttl: Seconds an entry stays valid
            clock: Time source (seconds since epoch)
            variant: Settings fingerprint the cached feed was built under
        """
        self.storage = storage
        self.ttl = ttl
        self._clock = clock
        self.variant = variant
        self._entry: Optional[CachedFeed] = self._load()

    def get(self, channels: Iterable[Channel]) -> Optional[list[FeedItem]]:
        """Return the cached feed for this follow-set, or None on a miss."""
        entry = self.peek(channels)
        if entry is None:
            return None
        if not entry.is_live(self._clock()):
            logger.debug("feed_cache_expired", age=self._clock() - entry.stored_at)
            self.invalidate()
            return None
        return list(entry.items)

    def peek(self, channels: Iterable[Channel]) -> Optional[CachedFeed]:
        """Return the entry for this follow-set regardless of freshness."""
        if self._entry is None or self._entry.key != follow_key(channels, self.variant):
            return None
        return self._entry

    def put(self, channels: Iterable[Channel], items: list[FeedItem]) -> CachedFeed:
        """Replace the cached feed wholesale."""
        self._entry = CachedFeed(
            key=follow_key(channels, self.variant),
            items=list(items),
            stored_at=self._clock(),
            ttl=self.ttl,
        )
        if self.storage is not None:
            self.storage.save(FEED_CACHE_KEY, self._entry.to_dict())
        return self._entry

    def invalidate(self) -> None:
        """Drop the cached feed."""
        self._entry = None
        if self.storage is not None:
            self.storage.remove(FEED_CACHE_KEY)

    @property
    def stored_at(self) -> Optional[float]:
        return self._entry.stored_at if self._entry else None

    def _load(self) -> Optional[CachedFeed]:
        if self.storage is None:
            return None
        raw = self.storage.load(FEED_CACHE_KEY)
        if not raw:
            return None
        try:
            return CachedFeed.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("feed_cache_unreadable", error=str(e))
            return None
