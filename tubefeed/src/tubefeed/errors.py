"""
Error taxonomy shared by the gateway and the client.

Gateway errors carry the HTTP status they are surfaced as; every error has a
stable ``kind`` used in per-channel error records.
"""

from typing import Optional


class TubeFeedError(Exception):
    """Base class for all tubefeed errors."""

    status_code: int = 500

    @property
    def kind(self) -> str:
        return type(self).__name__


class OriginRejected(TubeFeedError):
    """Raised when a request's Origin header is not on the allow-list."""

    status_code = 403


class RateLimited(TubeFeedError):
    """Raised when a client exceeds its sliding-window request budget."""

    status_code = 429


class InvalidInput(TubeFeedError):
    """Raised for a malformed channel id, search query or route."""

    status_code = 400


class UpstreamUnavailable(TubeFeedError):
    """
    Raised when the upstream cannot be reached or answers non-2xx.

    ``status_code`` is the upstream status when there was one (404 stays
    404), otherwise 503.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code or 503


class UpstreamMalformed(TubeFeedError):
    """Raised when an upstream payload fails shape validation."""

    status_code = 502


class ParseFailure(TubeFeedError):
    """Raised when the expected embedded structure cannot be located."""

    status_code = 502


class StoreUnavailable(TubeFeedError):
    """Raised by shared stores when the backing service cannot be used."""

    status_code = 503


class PartialAggregationFailure(TubeFeedError):
    """One or more per-channel fetches failed during aggregation."""

    def __init__(self, errors: list):
        self.errors = list(errors)
        channels = ", ".join(e.channel_id for e in self.errors)
        super().__init__(f"{len(self.errors)} channel(s) failed: {channels}")
