"""
Tests for TTL-bounded caches and the shared store.

Tests:
- MemoryStore expiry and last-write-wins
- Gateway ResponseCache freshness and store failures
- Client FeedCache keyed by follow-set, with persistence
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from tubefeed.client.feed_cache import FeedCache, follow_key
from tubefeed.client.storage import FEED_CACHE_KEY, MemoryStorage
from tubefeed.errors import StoreUnavailable
from tubefeed.gateway.cache import ResponseCache
from tubefeed.models import Channel, FeedItem
from tubefeed.store import KeyValueStore, MemoryStore

A = Channel("UC" + "a" * 22, "Alpha")
B = Channel("UC" + "b" * 22, "Beta")


def make_item(item_id: str, channel: Channel = A, hour: int = 12) -> FeedItem:
    return FeedItem(
        item_id=item_id,
        title=f"Video {item_id}",
        published_at=datetime(2024, 3, 1, hour, tzinfo=timezone.utc),
        thumbnail_url=f"https://i.ytimg.com/vi/{item_id}/maxresdefault.jpg",
        channel=channel,
    )


class TestMemoryStore:
    """Tests for the in-process store."""

    def test_get_set_delete(self, clock):
        store = MemoryStore(clock=clock)

        store.set("k", {"v": 1}, ttl_seconds=10)
        assert store.get("k") == {"v": 1}

        store.delete("k")
        assert store.get("k") is None

    def test_expired_keys_evicted_on_read(self, clock):
        store = MemoryStore(clock=clock)
        store.set("k", "v", ttl_seconds=10)

        clock.advance(10)

        assert store.get("k") is None
        assert len(store) == 0

    def test_last_write_wins(self, clock):
        store = MemoryStore(clock=clock)
        store.set("k", "first", ttl_seconds=10)
        store.set("k", "second", ttl_seconds=10)

        assert store.get("k") == "second"


class TestResponseCache:
    """Freshness: live before stored_at + ttl, a miss from then on."""

    def test_read_before_ttl_returns_entry_unchanged(self, clock):
        cache = ResponseCache(MemoryStore(clock=clock), clock=clock)
        cache.put("feed:x", "<feed></feed>", "application/atom+xml", ttl=900)

        clock.advance(899.9)
        entry = cache.get("feed:x")

        assert entry is not None
        assert entry.payload == "<feed></feed>"
        assert entry.ttl == 900

    def test_read_at_ttl_is_a_miss(self, clock):
        cache = ResponseCache(MemoryStore(clock=clock), clock=clock)
        cache.put("feed:x", "<feed></feed>", "application/atom+xml", ttl=900)

        clock.advance(900)

        assert cache.get("feed:x") is None

    def test_stale_entry_evicted_lazily(self, clock):
        """An entry the store still holds but whose own TTL passed is evicted."""
        store = MemoryStore(clock=clock)
        cache = ResponseCache(store, clock=clock)
        store.set("feed:x", {
            "payload": "old", "content_type": "text/plain", "stored_at": clock.now - 1000, "ttl": 900,
        }, ttl_seconds=3600)

        assert cache.get("feed:x") is None
        assert store.get("feed:x") is None

    def test_store_failure_reads_as_miss(self, clock):
        store = MagicMock(spec=KeyValueStore)
        store.get.side_effect = StoreUnavailable("down")
        store.set.side_effect = StoreUnavailable("down")
        cache = ResponseCache(store, clock=clock)

        assert cache.get("feed:x") is None
        entry = cache.put("feed:x", "body", "text/plain", ttl=60)
        assert entry.payload == "body"

    def test_corrupt_entry_is_a_miss(self, clock):
        store = MemoryStore(clock=clock)
        store.set("feed:x", {"unexpected": True}, ttl_seconds=60)

        assert ResponseCache(store, clock=clock).get("feed:x") is None


class TestFeedCache:
    """Tests for the client-side aggregated feed cache."""

    def test_hit_within_ttl(self, clock):
        cache = FeedCache(ttl=3600, clock=clock)
        cache.put([A, B], [make_item("v1")])

        clock.advance(3599)

        assert [i.item_id for i in cache.get([A, B])] == ["v1"]

    def test_miss_after_ttl(self, clock):
        cache = FeedCache(ttl=3600, clock=clock)
        cache.put([A], [make_item("v1")])

        clock.advance(3600)

        assert cache.get([A]) is None
        assert cache.stored_at is None

    def test_keyed_by_follow_set(self, clock):
        cache = FeedCache(clock=clock)
        cache.put([A, B], [make_item("v1")])

        assert cache.get([B, A]) is not None
        assert cache.get([A]) is None
        assert follow_key([B, A, A]) == follow_key([A, B])

    def test_keyed_by_variant(self, clock):
        storage = MemoryStorage()
        FeedCache(storage, clock=clock, variant="shorts=kept").put([A], [make_item("v1")])

        assert FeedCache(storage, clock=clock, variant="shorts=kept").get([A]) is not None
        assert FeedCache(storage, clock=clock, variant="shorts=filtered:default").get([A]) is None
        assert follow_key([A], "shorts=kept") != follow_key([A])

    def test_invalidate(self, clock):
        storage = MemoryStorage()
        cache = FeedCache(storage, clock=clock)
        cache.put([A], [make_item("v1")])

        cache.invalidate()

        assert cache.get([A]) is None
        assert storage.load(FEED_CACHE_KEY) is None

    def test_survives_restart_through_storage(self, clock):
        storage = MemoryStorage()
        FeedCache(storage, clock=clock).put([A], [make_item("v1"), make_item("v2", hour=9)])

        reloaded = FeedCache(storage, clock=clock)

        items = reloaded.get([A])
        assert [i.item_id for i in items] == ["v1", "v2"]
        assert items[0] == make_item("v1")
        assert items[0].channel.display_name == "Alpha"

    def test_unreadable_storage_is_ignored(self, clock):
        storage = MemoryStorage()
        storage.save(FEED_CACHE_KEY, {"key": "x"})

        assert FeedCache(storage, clock=clock).get([A]) is None
