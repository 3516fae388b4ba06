"""
Client session: the state objects of one application session, wired together.
"""

from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from ..models import EMBED_URL_TEMPLATE
from .aggregator import FeedAggregator, RefreshResult
from .feed_cache import FeedCache
from .fetcher import FeedFetcher
from .follows import FollowList
from .storage import JsonFileStorage, Storage
from .watched import WatchedSet


def feed_variant(settings: Settings) -> str:
    """Fingerprint of the settings that change which items a feed contains."""
    if settings.filter_shorts:
        return f"shorts=filtered:{settings.shorts_heuristic}"
    return "shorts=kept"


@dataclass
class FeedSession:
    """Owned client state plus the aggregator built on top of it."""
    storage: Storage
    follows: FollowList
    watched: WatchedSet
    feed_cache: FeedCache
    fetcher: FeedFetcher
    aggregator: FeedAggregator

    @classmethod
    def from_settings(cls, settings: Settings, storage: Optional[Storage] = None) -> "FeedSession":
        storage = storage if storage is not None else JsonFileStorage(settings.state_dir)
        feed_cache = FeedCache(
            storage,
            ttl=settings.client_cache_ttl_seconds,
            variant=feed_variant(settings),
        )
        fetcher = FeedFetcher.from_settings(settings)
        return cls(
            storage=storage,
            follows=FollowList(storage, feed_cache),
            watched=WatchedSet(storage),
            feed_cache=feed_cache,
            fetcher=fetcher,
            aggregator=FeedAggregator(
                fetcher,
                feed_cache,
                filter_short_form=settings.filter_shorts,
                max_concurrent=settings.max_concurrent_fetches,
                fetch_timeout=settings.fetch_timeout,
            ),
        )

    async def refresh(self, force: bool = False) -> RefreshResult:
        """Refresh the feed for the current follow-set."""
        return await self.aggregator.refresh(self.follows.channels, force_bypass_cache=force)

    def open_item(self, item_id: str) -> str:
        """Mark an item watched and return the embed URL to open."""
        self.watched.add(item_id)
        return EMBED_URL_TEMPLATE.format(item_id=item_id)
