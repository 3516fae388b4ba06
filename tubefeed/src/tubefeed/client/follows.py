"""
Follow list: the set of channels whose items make up the feed.
"""

from typing import Iterator, Optional

from ..errors import InvalidInput
from ..logging_conf import get_logger
from ..models import Channel, is_valid_channel_id
from .feed_cache import FeedCache
from .storage import CHANNELS_KEY, Storage

logger = get_logger(__name__)


class FollowList:
    """
    Persistent set of followed channels.

    Any change persists immediately and invalidates the feed cache.
    Iteration yields channels in the order they were followed.
    """

    def __init__(self, storage: Storage, feed_cache: Optional[FeedCache] = None):
        self.storage = storage
        self.feed_cache = feed_cache
        self._channels: dict[str, Channel] = {}

        for raw in storage.load(CHANNELS_KEY) or []:
            # Older state stored bare ids
            channel = Channel(id=raw) if isinstance(raw, str) else Channel.from_dict(raw)
            if is_valid_channel_id(channel.id):
                self._channels[channel.id] = channel

    def follow(self, channel: Channel) -> bool:
        """Follow a channel. Returns False if it was already followed."""
        if not is_valid_channel_id(channel.id):
            raise InvalidInput(f"Invalid channel id: {channel.id!r}")
        if channel.id in self._channels:
            return False
        self._channels[channel.id] = channel
        self._changed()
        logger.info("channel_followed", channel=channel.id, name=channel.display_name)
        return True

    def unfollow(self, channel_id: str) -> bool:
        """Unfollow a channel. Returns False if it was not followed."""
        if self._channels.pop(channel_id, None) is None:
            return False
        self._changed()
        logger.info("channel_unfollowed", channel=channel_id)
        return True

    @property
    def channels(self) -> list[Channel]:
        return list(self._channels.values())

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.channels)

    def __len__(self) -> int:
        return len(self._channels)

    def _changed(self) -> None:
        self.storage.save(CHANNELS_KEY, [c.to_dict() for c in self._channels.values()])
        if self.feed_cache is not None:
            self.feed_cache.invalidate()
