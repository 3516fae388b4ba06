"""
Client side: fan-out aggregation, relay failover and local state.
"""

from .aggregator import FeedAggregator, RefreshResult, merge_feeds
from .feed_cache import FeedCache
from .fetcher import FeedFetcher
from .follows import FollowList
from .relay import RelayRotation
from .session import FeedSession
from .storage import JsonFileStorage, MemoryStorage, Storage
from .watched import WatchedSet

__all__ = [
    "FeedAggregator",
    "RefreshResult",
    "merge_feeds",
    "FeedCache",
    "FeedFetcher",
    "FollowList",
    "RelayRotation",
    "FeedSession",
    "JsonFileStorage",
    "MemoryStorage",
    "Storage",
    "WatchedSet",
]
