"""
Core data types shared by the gateway, the parsers and the client.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import re

# Fixed external channel-id shape: "UC" + 22 word/dash characters
CHANNEL_ID_PATTERN = re.compile(r"^UC[\w-]{22}$", re.ASCII)

THUMBNAIL_URL_TEMPLATE = "https://i.ytimg.com/vi/{item_id}/maxresdefault.jpg"
WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={item_id}"
EMBED_URL_TEMPLATE = "https://www.youtube.com/embed/{item_id}?rel=0&autoplay=1"

# Sort key for items without a usable publish time: oldest possible
EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def is_valid_channel_id(value: Optional[str]) -> bool:
    """Check a string against the external channel-id shape."""
    return bool(value) and CHANNEL_ID_PATTERN.match(value) is not None


def thumbnail_url_for(item_id: str) -> str:
    """Derive the thumbnail URL for an item id."""
    return THUMBNAIL_URL_TEMPLATE.format(item_id=item_id) if item_id else ""


@dataclass(frozen=True)
class Channel:
    """A followable content source. Identity is the channel id."""
    id: str
    display_name: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.display_name or self.id

    def to_dict(self) -> dict:
        return {"id": self.id, "display_name": self.display_name}

    @classmethod
    def from_dict(cls, data: dict) -> "Channel":
        return cls(id=data.get("id", ""), display_name=data.get("display_name", ""))


@dataclass(frozen=True)
class FeedItem:
    """
    One piece of content belonging to a channel.

    Immutable once produced by the feed parser. Watched state is never stored
    here; it lives in the WatchedSet and is looked up at render time.
    """
    item_id: str
    title: str
    published_at: Optional[datetime]
    thumbnail_url: str
    channel: Channel
    is_short_form: bool = False

    @property
    def watch_url(self) -> str:
        return WATCH_URL_TEMPLATE.format(item_id=self.item_id)

    @property
    def embed_url(self) -> str:
        return EMBED_URL_TEMPLATE.format(item_id=self.item_id)

    @property
    def sort_key(self) -> datetime:
        return self.published_at or EPOCH

    def __str__(self) -> str:
        return f"[{self.channel}] {self.title[:60]}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "item_id": self.item_id,
            "title": self.title,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "thumbnail_url": self.thumbnail_url,
            "channel": self.channel.to_dict(),
            "is_short_form": self.is_short_form,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FeedItem":
        published = data.get("published_at")
        return cls(
            item_id=data.get("item_id", ""),
            title=data.get("title", ""),
            published_at=datetime.fromisoformat(published) if published else None,
            thumbnail_url=data.get("thumbnail_url", ""),
            channel=Channel.from_dict(data.get("channel") or {}),
            is_short_form=bool(data.get("is_short_form", False)),
        )


@dataclass(frozen=True)
class ChannelSummary:
    """A channel-shaped search result."""
    channel_id: str
    channel_name: str
    subscriber_count_label: str = "N/A"
    thumbnail_url: Optional[str] = None

    def to_channel(self) -> Channel:
        return Channel(id=self.channel_id, display_name=self.channel_name)

    def to_dict(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "channel_name": self.channel_name,
            "subscriber_count_label": self.subscriber_count_label,
            "thumbnail_url": self.thumbnail_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChannelSummary":
        return cls(
            channel_id=data.get("channel_id", ""),
            channel_name=data.get("channel_name", ""),
            subscriber_count_label=data.get("subscriber_count_label") or "N/A",
            thumbnail_url=data.get("thumbnail_url"),
        )


@dataclass(frozen=True)
class ChannelError:
    """A per-channel failure captured during aggregation."""
    channel_id: str
    kind: str
    message: str = ""

    def __str__(self) -> str:
        return f"Channel {self.channel_id}: {self.kind} {self.message}".rstrip()
