"""
Upstream gateway: the protective edge in front of the video provider.

Request pipeline:
1. Origin check against the allow-list (absent Origin is allowed)
2. Client identity from the trusted connecting-IP header
3. Sliding-window rate limit per identity (fails open)
4. Route on query parameter: ``channelId`` -> feed, ``search`` -> search
5. Serve from the response cache or fetch, validate and store

Store calls (rate limit and cache) are synchronous and run in worker threads
so a slow shared store never stalls the event loop.

All gateway errors are terminal for the single call and are surfaced as
status codes with CORS headers attached.
"""

from dataclasses import dataclass, field
from typing import Optional
import asyncio
import json
import uuid

import httpx

from ..config import Settings
from ..errors import (
    InvalidInput,
    OriginRejected,
    RateLimited,
    TubeFeedError,
    UpstreamMalformed,
)
from ..logging_conf import bind_context, clear_context, get_logger
from ..models import is_valid_channel_id
from ..parsing.search import ChannelSearchParser
from ..store import KeyValueStore, create_store
from .cache import CacheEntry, ResponseCache
from .ratelimit import SlidingWindowRateLimiter
from .upstream import UpstreamClient

logger = get_logger(__name__)

FEED_CONTENT_TYPE = "application/atom+xml; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 100


@dataclass
class GatewayRequest:
    """Transport-neutral view of an incoming request."""
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None


@dataclass
class GatewayResponse:
    """Transport-neutral response."""
    status_code: int
    body: str = ""
    content_type: str = TEXT_CONTENT_TYPE
    headers: dict[str, str] = field(default_factory=dict)


def cors_headers(origin: str) -> dict[str, str]:
    """CORS headers scoped to one resolved origin."""
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": "86400",
        "Vary": "Origin",
    }


class UpstreamGateway:
    """
    Validates, rate-limits, caches and proxies upstream feed and search calls.
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        cache: ResponseCache,
        rate_limiter: SlidingWindowRateLimiter,
        allowed_origins: Optional[list[str]] = None,
        search_parser: Optional[ChannelSearchParser] = None,
        client_ip_header: str = "cf-connecting-ip",
        fallback_client_id: str = "anonymous",
        feed_ttl: float = 900,
        search_ttl: float = 300,
    ):
        self.upstream = upstream
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.allowed_origins = list(allowed_origins or [])
        self.search_parser = search_parser or ChannelSearchParser()
        self.client_ip_header = client_ip_header
        self.fallback_client_id = fallback_client_id
        self.feed_ttl = feed_ttl
        self.search_ttl = search_ttl

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[KeyValueStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "UpstreamGateway":
        """Wire a gateway from configuration."""
        store = store if store is not None else create_store(settings.redis_url)
        return cls(
            upstream=UpstreamClient(
                user_agent=settings.upstream_user_agent,
                timeout=settings.upstream_timeout,
                transport=transport,
            ),
            cache=ResponseCache(store),
            rate_limiter=SlidingWindowRateLimiter(
                store,
                cap=settings.rate_limit_cap,
                window_seconds=settings.rate_limit_window_seconds,
            ),
            allowed_origins=settings.allowed_origins_list,
            client_ip_header=settings.client_ip_header,
            fallback_client_id=settings.fallback_client_id,
            feed_ttl=settings.feed_cache_ttl_seconds,
            search_ttl=settings.search_cache_ttl_seconds,
        )

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Handle one request end to end."""
        origin = request.header("origin")

        if request.method.upper() == "OPTIONS":
            return self.preflight(origin)

        if origin and origin not in self.allowed_origins:
            logger.info("origin_rejected", origin=origin)
            error = OriginRejected("Forbidden: Origin not allowed")
            return GatewayResponse(status_code=error.status_code, body=str(error))

        cors_origin = origin or self._default_origin()
        identity = self.client_identity(request)
        bind_context(request_id=uuid.uuid4().hex[:12], client_id=identity)

        try:
            if not await asyncio.to_thread(self.rate_limiter.check, identity):
                raise RateLimited("Too many requests")

            channel_id = request.query.get("channelId")
            search = request.query.get("search")

            if channel_id is not None and search is None:
                bind_context(route="feed")
                entry, hit = await self._feed(channel_id)
            elif search is not None and channel_id is None:
                bind_context(route="search")
                entry, hit = await self._search(search)
            else:
                raise InvalidInput('Expected exactly one of "channelId" or "search"')

            return self._success(entry, cors_origin, hit)

        except TubeFeedError as e:
            return self._error(e, cors_origin)
        finally:
            clear_context()

    def preflight(self, origin: Optional[str]) -> GatewayResponse:
        """Answer a CORS preflight. No side effects, no rate-limit consumption."""
        resolved = origin if origin in self.allowed_origins else self._default_origin()
        return GatewayResponse(status_code=204, headers=cors_headers(resolved))

    def client_identity(self, request: GatewayRequest) -> str:
        """Client identity from the trusted connecting-IP header."""
        value = request.header(self.client_ip_header)
        if value:
            # A forwarded chain lists the original client first
            return value.split(",")[0].strip() or self.fallback_client_id
        return self.fallback_client_id

    async def _feed(self, channel_id: str) -> tuple[CacheEntry, bool]:
        if not is_valid_channel_id(channel_id):
            raise InvalidInput("Invalid channelId")

        key = f"feed:{channel_id}"
        entry = await asyncio.to_thread(self.cache.get, key)
        if entry is not None:
            logger.debug("feed_cache_hit", channel=channel_id)
            return entry, True

        document = await self.upstream.fetch_feed(channel_id)
        document = document.lstrip("\ufeff \t\r\n")
        if "<feed" not in document or "</feed>" not in document:
            logger.warning("feed_malformed", channel=channel_id, length=len(document))
            raise UpstreamMalformed("Upstream returned a malformed feed")

        logger.info("feed_fetched", channel=channel_id, bytes=len(document))
        entry = await asyncio.to_thread(self.cache.put, key, document, FEED_CONTENT_TYPE, self.feed_ttl)
        return entry, False

    async def _search(self, query: str) -> tuple[CacheEntry, bool]:
        query = query.strip()
        if not MIN_QUERY_LENGTH <= len(query) <= MAX_QUERY_LENGTH:
            raise InvalidInput(
                f"Search query must be {MIN_QUERY_LENGTH}-{MAX_QUERY_LENGTH} characters"
            )

        sanitized = query.replace("<", "").replace(">", "").strip()
        if not sanitized:
            raise InvalidInput("Search query is empty after sanitizing")

        key = f"search:{sanitized.lower()}"
        entry = await asyncio.to_thread(self.cache.get, key)
        if entry is not None:
            logger.debug("search_cache_hit", query=sanitized)
            return entry, True

        document = await self.upstream.fetch_search(sanitized)
        channels = self.search_parser.parse(document).unwrap()

        logger.info("search_fetched", query=sanitized, results=len(channels))
        payload = json.dumps([c.to_dict() for c in channels])
        entry = await asyncio.to_thread(self.cache.put, key, payload, JSON_CONTENT_TYPE, self.search_ttl)
        return entry, False

    def _success(self, entry: CacheEntry, origin: str, hit: bool) -> GatewayResponse:
        headers = cors_headers(origin)
        headers["Cache-Control"] = f"public, max-age={int(entry.ttl)}"
        headers["X-Cache"] = "HIT" if hit else "MISS"
        return GatewayResponse(
            status_code=200,
            body=entry.payload,
            content_type=entry.content_type,
            headers=headers,
        )

    def _error(self, error: TubeFeedError, origin: str) -> GatewayResponse:
        logger.info("request_failed", kind=error.kind, status=error.status_code, error=str(error))
        headers = cors_headers(origin)
        if isinstance(error, RateLimited):
            headers["Retry-After"] = str(int(self.rate_limiter.window_seconds))
        return GatewayResponse(
            status_code=error.status_code,
            body=str(error),
            headers=headers,
        )

    def _default_origin(self) -> str:
        return self.allowed_origins[0] if self.allowed_origins else "*"
