"""
Configuration management for the gap scanner.
Loads settings from environment variables and .env file.
"""

from datetime import date
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gapscanner.models import ScanFilters


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Finnhub API (quote provider). Optional here so a missing key is
    # reported by the scan itself instead of failing at import time.
    finnhub_api_key: Optional[str] = Field(default=None, description="Finnhub API key")
    finnhub_base_url: str = Field(
        default="https://finnhub.io/api/v1",
        description="Finnhub REST base URL"
    )
    request_timeout: float = Field(default=10.0, gt=0, le=120)

    # Durable cache (Redis)
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    use_redis: bool = Field(default=True, description="Disable to keep every cache tier in-process")

    # ============================================================================
    # SCAN CONFIGURATION
    # ============================================================================
    #
    # Free Finnhub keys allow ~60 calls/minute. One quote per symbol with a
    # 1000ms gap between requests stays under that ceiling, so a full 5000
    # symbol scan takes roughly 80+ minutes.
    scan_batch_size: int = Field(default=50, ge=1, le=1000)
    scan_delay_ms: int = Field(default=1000, ge=0, le=60000)

    # Filter cascade defaults
    min_gap_percent: float = Field(default=5.0, ge=0.0, le=100.0)
    min_volume: int = Field(default=100_000, ge=0)
    max_price: float = Field(default=500.0, gt=0)
    min_market_cap: float = Field(default=100_000_000, ge=0)
    max_results: int = Field(default=20, ge=1, le=500)

    # Cache lifetimes (seconds)
    result_cache_ttl: int = Field(default=24 * 60 * 60, ge=60)
    universe_cache_ttl: int = Field(default=7 * 24 * 60 * 60, ge=60)

    # Universe build
    universe_size: int = Field(default=5000, ge=1)
    universe_min_market_cap: float = Field(default=100_000_000, ge=0)
    profile_batch_size: int = Field(default=50, ge=1)

    # Additional market holidays beyond the built-in table (ISO dates)
    extra_holidays: List[date] = Field(default_factory=list)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/gapscanner.log")
    # Per-symbol DEBUG trail of each scan; empty string disables it
    symbol_log_file: str = Field(default="logs/gapscanner_symbols.log")

    @property
    def api_key_present(self) -> bool:
        """True when a Finnhub credential is configured."""
        return bool(self.finnhub_api_key)

    def default_filters(self, min_gap_percent: Optional[float] = None) -> ScanFilters:
        """Build the scan filter set, optionally overriding the gap threshold."""
        return ScanFilters(
            batch_size=self.scan_batch_size,
            delay_ms=self.scan_delay_ms,
            min_gap_percent=self.min_gap_percent if min_gap_percent is None else min_gap_percent,
            min_volume=self.min_volume,
            max_price=self.max_price,
            min_market_cap=self.min_market_cap,
            max_results=self.max_results,
        )


def get_settings() -> Settings:
    """Get application settings, loading from .env file."""
    return Settings()
