"""
HTTP client for the upstream video provider.

Requests go out with browser-like headers and a hard timeout. Network
failures and non-2xx answers both surface as UpstreamUnavailable; the
gateway never retries them.
"""

from typing import Optional

import httpx

from ..config import BROWSER_USER_AGENT
from ..errors import UpstreamUnavailable
from ..logging_conf import get_logger

logger = get_logger(__name__)

FEED_URL = "https://www.youtube.com/feeds/videos.xml"
SEARCH_URL = "https://www.youtube.com/results"

# Search-page filter restricting results to channels
CHANNEL_FILTER = "EgIQAg=="


class UpstreamClient:
    """
    Fetches raw feed and search documents from the upstream provider.
    """

    def __init__(
        self,
        user_agent: str = BROWSER_USER_AGENT,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize upstream client.

        Args:
            user_agent: User-Agent header sent upstream
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests inject a mock)
        """
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    async def fetch_feed(self, channel_id: str) -> str:
        """Fetch the raw Atom feed of one channel."""
        return await self._get(FEED_URL, params={"channel_id": channel_id})

    async def fetch_search(self, query: str) -> str:
        """Fetch the raw channel search-result page for a query."""
        return await self._get(SEARCH_URL, params={"search_query": query, "sp": CHANNEL_FILTER})

    async def _get(self, url: str, params: dict) -> str:
        logger.debug("upstream_request", url=url, params=params)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url, params=params, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error("upstream_fetch_failed", url=url, error=str(e))
            raise UpstreamUnavailable(f"Upstream request failed: {e}") from e

        if not response.is_success:
            logger.warning("upstream_bad_status", url=url, status=response.status_code)
            raise UpstreamUnavailable(
                f"Upstream returned {response.status_code}",
                status_code=response.status_code,
            )

        return response.text
