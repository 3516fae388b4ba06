"""
Edge gateway in front of the upstream provider.

- Origin allow-list and CORS
- Sliding-window rate limiting per client
- Shared response cache
- Upstream fetch and payload validation
"""

from .cache import CacheEntry, ResponseCache
from .ratelimit import SlidingWindowRateLimiter
from .service import GatewayRequest, GatewayResponse, UpstreamGateway
from .upstream import UpstreamClient

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "SlidingWindowRateLimiter",
    "GatewayRequest",
    "GatewayResponse",
    "UpstreamGateway",
    "UpstreamClient",
]
