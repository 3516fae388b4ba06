"""
Channel feed parser.

Turns a raw Atom feed document (as served by the upstream per-channel feed
endpoint) into typed FeedItem records, classifying each as short-form.
"""

from datetime import datetime, timezone
from typing import Optional
import calendar

import feedparser
from dateutil.parser import parse as parse_date

from ..logging_conf import get_logger
from ..models import Channel, FeedItem, thumbnail_url_for
from .shorts import ShortFormPredicate, is_likely_short

logger = get_logger(__name__)


class FeedParser:
    """
    Parser for per-channel Atom feeds.

    One malformed entry never drops the rest of the feed: missing or
    unparseable fields become empty strings (or None for the publish time).
    """

    def __init__(self, classifier: ShortFormPredicate = is_likely_short):
        """
        Initialize feed parser.

        Args:
            classifier: Predicate deciding whether a title is short-form
        """
        self.classifier = classifier

    def parse(
        self,
        document: str,
        filter_short_form: bool = True,
        channel: Optional[Channel] = None,
    ) -> list[FeedItem]:
        """
        Parse a feed document.

        Args:
            document: Raw feed XML
            filter_short_form: Exclude items classified as short-form
            channel: Channel the feed belongs to; derived from the feed
                header when not given

        Returns:
            Items in document order
        """
        feed = feedparser.parse(document)

        if feed.bozo and feed.bozo_exception:
            logger.warning("feed_parse_warning", error=str(feed.bozo_exception))

        if channel is None:
            channel = Channel(
                id=feed.feed.get("yt_channelid", ""),
                display_name=feed.feed.get("title", ""),
            )

        items = [self._parse_entry(entry, channel) for entry in feed.entries]

        if filter_short_form:
            kept = [item for item in items if not item.is_short_form]
        else:
            kept = items

        logger.debug(
            "feed_parsed",
            channel=channel.id,
            total_entries=len(items),
            kept_items=len(kept),
        )
        return kept

    def classify(self, title: Optional[str]) -> bool:
        """Classify a title with the configured predicate."""
        return bool(self.classifier(title or ""))

    def _parse_entry(self, entry: dict, channel: Channel) -> FeedItem:
        """Parse a single feed entry."""
        item_id = _text(entry.get("yt_videoid"))
        title = _text(entry.get("title"))

        entry_channel = channel
        if not channel.display_name and entry.get("author"):
            entry_channel = Channel(id=channel.id, display_name=_text(entry.get("author")))

        return FeedItem(
            item_id=item_id,
            title=title,
            published_at=self._parse_date(entry),
            thumbnail_url=thumbnail_url_for(item_id),
            channel=entry_channel,
            is_short_form=self.classify(title),
        )

    def _parse_date(self, entry: dict) -> Optional[datetime]:
        """Parse the publish time to an absolute UTC instant."""
        for field in ["published_parsed", "updated_parsed"]:
            parsed = entry.get(field)
            if parsed:
                try:
                    # feedparser normalizes struct_time to UTC
                    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
                except (ValueError, OverflowError, TypeError):
                    continue

        for field in ["published", "updated"]:
            date_str = entry.get(field)
            if date_str:
                try:
                    dt = parse_date(date_str)
                except (ValueError, OverflowError):
                    continue
                if dt.tzinfo is None:
                    dt = dt.replace(tzinfo=timezone.utc)
                return dt.astimezone(timezone.utc)

        return None


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()
