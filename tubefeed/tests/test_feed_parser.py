"""
Tests for the channel feed parser.

Tests:
- Field extraction and thumbnail derivation
- Short-form filtering vs. flag-only classification
- Tolerance of malformed entries and documents
"""

from datetime import datetime, timezone

from tubefeed.models import Channel
from tubefeed.parsing.feed import FeedParser

CHANNEL_ID = "UCabcdefghijklmnopqrstuv"


def sample_entries():
    return [
        {"id": "vid00000001", "title": "Big Announcement", "published": "2024-03-02T10:00:00+00:00"},
        {"id": "vid00000002", "title": "Quick tip #shorts", "published": "2024-03-01T09:30:00+00:00"},
        {"id": "vid00000003", "title": "Deep dive part 2", "published": "2024-02-28T18:15:00+02:00"},
    ]


class TestFeedParser:
    """Tests for FeedParser.parse."""

    def test_extracts_fields(self, feed_document):
        """Should extract id, title, publish time and derive the thumbnail."""
        doc = feed_document(CHANNEL_ID, "Test Channel", sample_entries())
        channel = Channel(id=CHANNEL_ID, display_name="Test Channel")

        items = FeedParser().parse(doc, filter_short_form=False, channel=channel)

        assert [i.item_id for i in items] == ["vid00000001", "vid00000002", "vid00000003"]
        first = items[0]
        assert first.title == "Big Announcement"
        assert first.published_at == datetime(2024, 3, 2, 10, 0, tzinfo=timezone.utc)
        assert first.thumbnail_url == "https://i.ytimg.com/vi/vid00000001/maxresdefault.jpg"
        assert first.channel == channel
        assert first.watch_url == "https://www.youtube.com/watch?v=vid00000001"

    def test_publish_time_is_absolute(self, feed_document):
        """Offsets are normalized to UTC instants."""
        doc = feed_document(CHANNEL_ID, "Test Channel", sample_entries())

        items = FeedParser().parse(doc, filter_short_form=False)

        assert items[2].published_at == datetime(2024, 2, 28, 16, 15, tzinfo=timezone.utc)

    def test_filters_short_form_by_default(self, feed_document):
        doc = feed_document(CHANNEL_ID, "Test Channel", sample_entries())

        items = FeedParser().parse(doc)

        assert [i.item_id for i in items] == ["vid00000001", "vid00000003"]

    def test_flag_computed_without_filtering(self, feed_document):
        """filter_short_form=False keeps items but still classifies them."""
        doc = feed_document(CHANNEL_ID, "Test Channel", sample_entries())

        items = FeedParser().parse(doc, filter_short_form=False)

        flags = {i.item_id: i.is_short_form for i in items}
        assert flags == {"vid00000001": False, "vid00000002": True, "vid00000003": False}

    def test_derives_channel_from_feed_header(self, feed_document):
        doc = feed_document(CHANNEL_ID, "Header Name", sample_entries()[:1])

        items = FeedParser().parse(doc)

        assert items[0].channel.id == CHANNEL_ID
        assert items[0].channel.display_name == "Header Name"

    def test_malformed_entry_does_not_drop_the_rest(self, feed_document):
        """Missing id and unparseable date yield empty fields, not a failure."""
        entries = [
            {"id": None, "title": "No id here", "published": "not a date"},
            {"id": "vid00000009", "title": "Fine entry", "published": "2024-03-02T10:00:00+00:00"},
        ]
        doc = feed_document(CHANNEL_ID, "Test Channel", entries)

        items = FeedParser().parse(doc)

        assert len(items) == 2
        broken, fine = items
        assert broken.item_id == ""
        assert broken.thumbnail_url == ""
        assert broken.published_at is None
        assert fine.item_id == "vid00000009"

    def test_missing_title_is_empty_string(self, feed_document):
        entries = [{"id": "vid00000010", "title": None, "published": "2024-03-02T10:00:00+00:00"}]
        doc = feed_document(CHANNEL_ID, "Test Channel", entries)

        items = FeedParser().parse(doc)

        assert items[0].title == ""
        assert items[0].is_short_form is False

    def test_garbage_document_yields_no_items(self):
        assert FeedParser().parse("this is not xml at all") == []

    def test_custom_classifier(self, feed_document):
        """The short-form predicate is swappable."""
        doc = feed_document(CHANNEL_ID, "Test Channel", sample_entries())
        parser = FeedParser(classifier=lambda title: "Deep" in title)

        items = parser.parse(doc)

        assert [i.item_id for i in items] == ["vid00000001", "vid00000002"]
