"""
Feed aggregation: fan out one fetch per followed channel, merge, sort, cache.

Per-channel failures are isolated. A failing channel contributes zero items
and one error record; it never aborts the aggregation. The merged feed is
deduplicated by item id and sorted newest first with a stable sort, so items
with equal publish times keep their per-channel fetch order regardless of
which fetch finished first.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

import httpx

from ..errors import PartialAggregationFailure, TubeFeedError, UpstreamUnavailable
from ..logging_conf import get_logger
from ..models import Channel, ChannelError, FeedItem
from .feed_cache import FeedCache

logger = get_logger(__name__)

UNAVAILABLE_KIND = UpstreamUnavailable.__name__


class ChannelFetcher(Protocol):
    async def fetch_channel(self, channel: Channel, filter_short_form: bool = True) -> list[FeedItem]:
        ...


@dataclass
class RefreshResult:
    """
    Outcome of one refresh.

    An empty feed with errors means every fetch failed; an empty feed without
    errors means no items were found.
    """
    feed: list[FeedItem] = field(default_factory=list)
    errors: list[ChannelError] = field(default_factory=list)
    from_cache: bool = False
    stale: bool = False  # cached feed served because every fetch failed

    @property
    def partial(self) -> bool:
        return bool(self.errors)

    def raise_for_errors(self) -> None:
        """Raise PartialAggregationFailure if any channel failed."""
        if self.errors:
            raise PartialAggregationFailure(self.errors)


def merge_feeds(per_channel: Iterable[list[FeedItem]]) -> list[FeedItem]:
    """
    Merge per-channel item lists into one feed, newest first.

    Duplicate item ids keep their first occurrence. Python's sort is stable,
    also with reverse=True, so ties keep input order.
    """
    seen: set[str] = set()
    merged: list[FeedItem] = []
    for items in per_channel:
        for item in items:
            if item.item_id:
                if item.item_id in seen:
                    continue
                seen.add(item.item_id)
            merged.append(item)
    return sorted(merged, key=lambda item: item.sort_key, reverse=True)


class FeedAggregator:
    """
    Builds the aggregated feed for a follow-set.
    """

    def __init__(
        self,
        fetcher: ChannelFetcher,
        cache: FeedCache,
        filter_short_form: bool = True,
        max_concurrent: int = 5,
        fetch_timeout: float = 15.0,
    ):
        """
        Initialize aggregator.

        Args:
            fetcher: Fetches one channel's items
            cache: Cache of the last aggregated feed
            filter_short_form: Exclude short-form items
            max_concurrent: Max channel fetches in flight
            fetch_timeout: Upper bound for one channel fetch (seconds)
        """
        self.fetcher = fetcher
        self.cache = cache
        self.filter_short_form = filter_short_form
        self.max_concurrent = max_concurrent
        self.fetch_timeout = fetch_timeout

    async def refresh(
        self,
        channels: Iterable[Channel],
        force_bypass_cache: bool = False,
    ) -> RefreshResult:
        """
        Return the aggregated feed for ``channels``.

        Args:
            channels: Followed channels, in fetch order
            force_bypass_cache: Skip the cache lookup and fetch everything

        Returns:
            RefreshResult with the merged feed and per-channel errors
        """
        channels = list(channels)

        if not force_bypass_cache:
            cached = self.cache.get(channels)
            if cached is not None:
                logger.info("feed_cache_hit", items=len(cached))
                return RefreshResult(feed=cached, from_cache=True)

        if not channels:
            return RefreshResult()

        logger.info("refresh_started", channels=len(channels), forced=force_bypass_cache)

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_one(channel: Channel) -> tuple[list[FeedItem], Optional[ChannelError]]:
            async with semaphore:
                try:
                    items = await asyncio.wait_for(
                        self.fetcher.fetch_channel(channel, self.filter_short_form),
                        timeout=self.fetch_timeout,
                    )
                    return items, None
                except asyncio.TimeoutError:
                    error = ChannelError(channel.id, UNAVAILABLE_KIND, f"timed out after {self.fetch_timeout}s")
                except TubeFeedError as e:
                    error = ChannelError(channel.id, e.kind, str(e))
                except (httpx.HTTPError, OSError) as e:
                    error = ChannelError(channel.id, UNAVAILABLE_KIND, str(e))
                except Exception as e:
                    logger.exception("channel_fetch_crashed", channel=channel.id)
                    error = ChannelError(channel.id, type(e).__name__, str(e))

                logger.error(
                    "channel_fetch_failed",
                    channel=channel.id,
                    kind=error.kind,
                    error=error.message,
                )
                return [], error

        results = await asyncio.gather(*[fetch_one(c) for c in channels])

        errors = [error for _, error in results if error is not None]
        feed = merge_feeds(items for items, _ in results)

        if errors and len(errors) == len(channels):
            previous = self.cache.get(channels)
            logger.warning("refresh_all_failed", channels=len(channels), cached=previous is not None)
            if previous is not None:
                return RefreshResult(feed=previous, errors=errors, from_cache=True, stale=True)
            return RefreshResult(errors=errors)

        self.cache.put(channels, feed)

        logger.info(
            "refresh_complete",
            items=len(feed),
            channels_succeeded=len(channels) - len(errors),
            channels_failed=len(errors),
        )
        return RefreshResult(feed=feed, errors=errors)
