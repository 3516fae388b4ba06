"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables (prefixed TUBEFEED_)
with sensible defaults. Gateway and client settings live side by side since
both halves ship in the same distribution.
"""

from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

SHORTS_HEURISTICS = ("default", "hashtag", "pictograph")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TUBEFEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gateway: access control
    allowed_origins: str = Field("", description="Allowed browser origins, comma-separated")
    client_ip_header: str = Field("cf-connecting-ip", description="Trusted header carrying the client IP")
    fallback_client_id: str = Field("anonymous", description="Identity used when no client IP is known")

    # Gateway: rate limiting
    rate_limit_cap: int = Field(30, description="Max requests per client within the window")
    rate_limit_window_seconds: int = Field(60, description="Sliding window length (seconds)")

    # Gateway: response cache
    feed_cache_ttl_seconds: int = Field(900, description="TTL for cached channel feeds")
    search_cache_ttl_seconds: int = Field(300, description="TTL for cached search results")
    redis_url: Optional[str] = Field(None, description="Shared store URL (leave empty for in-process memory)")

    # Gateway: upstream
    upstream_timeout: float = Field(10.0, description="Timeout for upstream requests (seconds)")
    upstream_user_agent: str = Field(BROWSER_USER_AGENT, description="User agent sent upstream")

    # Server
    port: int = Field(8000, description="Gateway server port")

    # Client
    gateway_url: str = Field("http://localhost:8000", description="Base URL of the gateway")
    relay_urls: str = Field("", description="Relay endpoints, comma-separated ({url} template or prefix)")
    fetch_timeout: float = Field(15.0, description="Per-channel fetch timeout (seconds)")
    fetch_attempts: int = Field(2, description="Attempts per gateway call on transient failure")
    max_concurrent_fetches: int = Field(5, description="Max concurrent per-channel fetches")
    client_cache_ttl_seconds: int = Field(3600, description="TTL of the aggregated feed cache")
    filter_shorts: bool = Field(True, description="Hide short-form items from the feed")
    shorts_heuristic: str = Field("default", description="Short-form predicate name")
    state_dir: Path = Field(Path.home() / ".tubefeed", description="Directory for persisted client state")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Output logs as JSON")

    @field_validator("rate_limit_cap", "rate_limit_window_seconds", "fetch_attempts", "max_concurrent_fetches")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        """Reject zero or negative limits."""
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("shorts_heuristic")
    @classmethod
    def known_heuristic(cls, v: str) -> str:
        """Validate the short-form predicate name."""
        v = v.strip().lower()
        if v not in SHORTS_HEURISTICS:
            raise ValueError(f"Unknown shorts heuristic {v!r}, expected one of {SHORTS_HEURISTICS}")
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get allowed origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def relay_urls_list(self) -> list[str]:
        """Get relay endpoints as a list, in configured order."""
        return [r.strip() for r in self.relay_urls.split(",") if r.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Clear cache to allow re-reading settings (useful for tests)
def clear_settings_cache():
    """Clear the settings cache."""
    get_settings.cache_clear()
