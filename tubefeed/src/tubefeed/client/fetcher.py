"""
Per-channel fetching for the client.

Channel feeds come through the gateway by default, or straight from the
upstream feed endpoint through relays when the gateway cannot be used.
Channel search always goes through the gateway, which parses results
server-side.
"""

from typing import Optional
import json
from urllib.parse import urlencode

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import Settings
from ..errors import (
    InvalidInput,
    OriginRejected,
    ParseFailure,
    RateLimited,
    TubeFeedError,
    UpstreamMalformed,
    UpstreamUnavailable,
)
from ..gateway.upstream import FEED_URL
from ..logging_conf import get_logger
from ..models import Channel, ChannelSummary, FeedItem
from ..parsing.feed import FeedParser
from ..parsing.shorts import get_heuristic
from .relay import RelayRotation

logger = get_logger(__name__)

# Gateway status codes mapped back to the error taxonomy
STATUS_ERRORS = {
    400: InvalidInput,
    403: OriginRejected,
    429: RateLimited,
    502: UpstreamMalformed,
}


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, UpstreamUnavailable) and error.status_code >= 500


class FeedFetcher:
    """
    Fetches and parses one channel's feed, and runs channel searches.
    """

    def __init__(
        self,
        gateway_url: str,
        parser: Optional[FeedParser] = None,
        relays: Optional[RelayRotation] = None,
        timeout: float = 15.0,
        attempts: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize fetcher.

        Args:
            gateway_url: Base URL of the gateway
            parser: Feed parser (carries the short-form predicate)
            relays: When given, feeds are fetched through these relays
            timeout: HTTP timeout in seconds
            attempts: Attempts per gateway call on transient failures
            transport: Optional httpx transport (tests inject a mock)
        """
        self.gateway_url = gateway_url.rstrip("/") + "/"
        self.parser = parser or FeedParser()
        self.relays = relays
        self.timeout = timeout
        self.attempts = attempts
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedFetcher":
        relays = None
        if settings.relay_urls_list:
            relays = RelayRotation(settings.relay_urls_list, timeout=settings.fetch_timeout)
        return cls(
            gateway_url=settings.gateway_url,
            parser=FeedParser(classifier=get_heuristic(settings.shorts_heuristic)),
            relays=relays,
            timeout=settings.fetch_timeout,
            attempts=settings.fetch_attempts,
        )

    async def fetch_channel(self, channel: Channel, filter_short_form: bool = True) -> list[FeedItem]:
        """Fetch and parse the recent items of one channel."""
        if self.relays is not None:
            target = f"{FEED_URL}?{urlencode({'channel_id': channel.id})}"
            document = await self.relays.request_through(target)
            if "<feed" not in document or "</feed>" not in document:
                raise UpstreamMalformed(f"Relay returned a malformed feed for {channel.id}")
        else:
            document = await self._gateway_get({"channelId": channel.id})

        items = self.parser.parse(document, filter_short_form=filter_short_form, channel=channel)
        logger.debug("channel_fetched", channel=channel.id, items=len(items))
        return items

    async def search_channels(self, query: str) -> list[ChannelSummary]:
        """Search channels through the gateway's search route."""
        try:
            body = await self._gateway_get({"search": query})
        except UpstreamMalformed as e:
            raise ParseFailure(str(e)) from e
        return [ChannelSummary.from_dict(c) for c in json.loads(body)]

    async def _gateway_get(self, params: dict) -> str:
        body = ""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                body = await self._gateway_request(params)
        return body

    async def _gateway_request(self, params: dict) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.gateway_url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Gateway request failed: {e}") from e

        if response.is_success:
            return response.text

        message = response.text.strip() or f"Gateway returned {response.status_code}"
        error_cls = STATUS_ERRORS.get(response.status_code)
        if error_cls is not None:
            error: TubeFeedError = error_cls(message)
        else:
            error = UpstreamUnavailable(message, status_code=response.status_code)
        raise error
