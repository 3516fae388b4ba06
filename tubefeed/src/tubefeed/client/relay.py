"""
Relay rotation for reaching upstream resources through intermediary proxies.

The relay list is immutable and each call keeps its own attempt counter, so
concurrent calls never share a cursor. A call starts at an explicit offset or
at a stable hash of the target URL, then walks the list (wrapping) trying each
relay at most once, with no delay between attempts.
"""

from typing import Optional, Sequence
from urllib.parse import quote
import zlib

import httpx

from ..errors import UpstreamUnavailable
from ..logging_conf import get_logger

logger = get_logger(__name__)


def relay_url(relay: str, target: str) -> str:
    """
    Build the request URL for one relay.

    A relay containing ``{url}`` is a template; otherwise it is a prefix to
    which the encoded target is appended.
    """
    encoded = quote(target, safe="")
    if "{url}" in relay:
        return relay.replace("{url}", encoded)
    return relay + encoded


class RelayRotation:
    """Ordered relay failover."""

    def __init__(
        self,
        relays: Sequence[str],
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize relay rotation.

        Args:
            relays: Relay endpoints in preference order
            timeout: Per-attempt timeout in seconds
            transport: Optional httpx transport (tests inject a mock)
        """
        if not relays:
            raise ValueError("At least one relay is required")
        self.relays = tuple(relays)
        self.timeout = timeout
        self.transport = transport

    def start_index(self, target: str, start: Optional[int] = None) -> int:
        """First relay to try for ``target``."""
        if start is not None:
            return start % len(self.relays)
        return zlib.crc32(target.encode("utf-8")) % len(self.relays)

    async def request_through(self, url: str, start: Optional[int] = None) -> str:
        """
        Fetch ``url`` through the relays.

        Args:
            url: Target URL
            start: Optional starting offset into the relay list

        Returns:
            Response body of the first relay that answers 2xx

        Raises:
            UpstreamUnavailable: the last failure, once every relay failed
        """
        first = self.start_index(url, start)
        last_error: Optional[UpstreamUnavailable] = None

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            for attempt in range(len(self.relays)):
                relay = self.relays[(first + attempt) % len(self.relays)]
                try:
                    response = await client.get(relay_url(relay, url))
                except httpx.HTTPError as e:
                    last_error = UpstreamUnavailable(f"Relay {relay} failed: {e}")
                    last_error.__cause__ = e
                else:
                    if response.is_success:
                        if attempt:
                            logger.info("relay_failover_succeeded", relay=relay, attempts=attempt + 1)
                        return response.text
                    last_error = UpstreamUnavailable(
                        f"Relay {relay} returned {response.status_code}",
                        status_code=response.status_code,
                    )

                logger.warning("relay_failed", relay=relay, attempt=attempt + 1, error=str(last_error))

        logger.error("all_relays_failed", url=url, relays=len(self.relays))
        raise last_error
