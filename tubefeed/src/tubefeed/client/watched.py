"""
Watched-item set: consumption state, owned apart from the feed.
"""

from typing import Iterator

from ..logging_conf import get_logger
from .storage import WATCHED_KEY, Storage

logger = get_logger(__name__)


class WatchedSet:
    """
    Persistent set of watched item ids.

    Grows monotonically; there is no unwatch. Items are never mutated to
    carry watched state, callers look ids up here at render time.
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self._ids: set[str] = set(storage.load(WATCHED_KEY) or [])

    def add(self, item_id: str) -> bool:
        """Mark an item as watched. Returns False if it already was."""
        if not item_id or item_id in self._ids:
            return False
        self._ids.add(item_id)
        self.storage.save(WATCHED_KEY, sorted(self._ids))
        logger.debug("item_watched", item_id=item_id)
        return True

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)
