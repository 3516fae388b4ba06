"""
Sliding-window rate limiter.

Each client identity owns a list of request timestamps in the shared store.
A request is admitted only if fewer than ``cap`` timestamps fall inside the
trailing window; rejected requests are not recorded. The count decays
continuously as old timestamps age out, there are no fixed buckets.
"""

from typing import Callable
import time

from ..errors import StoreUnavailable
from ..logging_conf import get_logger
from ..store import KeyValueStore

logger = get_logger(__name__)

KEY_PREFIX = "ratelimit:"


class SlidingWindowRateLimiter:
    """
    Per-identity admission control over a trailing time window.

    If the store is unavailable the limiter fails open and admits.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cap: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.cap = cap
        self.window_seconds = window_seconds
        self._clock = clock

    def check(self, identity: str) -> bool:
        """Admit or reject one request for ``identity``."""
        key = f"{KEY_PREFIX}{identity}"
        now = self._clock()

        try:
            stored = self.store.get(key) or []
        except StoreUnavailable as e:
            logger.warning("rate_limit_store_unavailable", error=str(e))
            return True

        recent = self._recent(stored, now, identity)

        if len(recent) >= self.cap:
            logger.info("rate_limited", client_id=identity, count=len(recent))
            return False

        recent.append(now)
        try:
            self.store.set(key, recent, ttl_seconds=self.window_seconds * 2)
        except StoreUnavailable as e:
            logger.warning("rate_limit_store_unavailable", error=str(e))

        return True

    def remaining(self, identity: str) -> int:
        """Requests still admissible for ``identity`` right now."""
        try:
            stored = self.store.get(f"{KEY_PREFIX}{identity}") or []
        except StoreUnavailable:
            return self.cap
        return max(0, self.cap - len(self._recent(stored, self._clock(), identity)))

    def _recent(self, stored, now: float, identity: str) -> list[float]:
        cutoff = now - self.window_seconds
        try:
            return [float(ts) for ts in stored if float(ts) > cutoff]
        except (TypeError, ValueError):
            logger.warning("rate_limit_window_corrupt", client_id=identity)
            return []
