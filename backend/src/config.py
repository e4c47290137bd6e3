"""
Configuration management for the FPL period standings service.

Loads configuration from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List

from standings.periods import PERIODS


@dataclass
class Config:
    """Application configuration."""

    # Environment
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    # FPL API Configuration
    fpl_api_base_url: str = field(
        default_factory=lambda: os.getenv("FPL_API_BASE_URL", "https://fantasy.premierleague.com/api")
    )

    # League being tracked (single league only)
    league_id: int = field(default_factory=lambda: int(os.getenv("LEAGUE_ID", "286461")))
    season_label: str = field(default_factory=lambda: os.getenv("SEASON_LABEL", "2024/25"))
    default_period: str = field(default_factory=lambda: os.getenv("DEFAULT_PERIOD", "aug-sep"))

    # Live refresh: re-aggregate every N seconds while the selected period holds the live gameweek
    live_refresh_interval: float = field(
        default_factory=lambda: float(os.getenv("LIVE_REFRESH_INTERVAL", "120"))
    )

    # API standings route: reload the league snapshot once it is this many seconds old
    session_ttl: float = field(default_factory=lambda: float(os.getenv("SESSION_TTL", "300")))

    # HTTP
    request_timeout: float = field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "30.0")))

    # Rate Limiting
    max_requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("MAX_REQUESTS_PER_MINUTE", "60"))
    )
    min_request_interval: float = field(
        default_factory=lambda: float(os.getenv("MIN_REQUEST_INTERVAL", "0.0"))
    )

    # Retry Configuration
    max_retries: int = field(default_factory=lambda: int(os.getenv("MAX_RETRIES", "3")))
    retry_backoff_base: float = field(default_factory=lambda: float(os.getenv("RETRY_BACKOFF_BASE", "1.0")))
    max_retry_delay: int = field(default_factory=lambda: int(os.getenv("MAX_RETRY_DELAY", "60")))

    # Proxy Cache-Control policies
    # Bootstrap is near-static during a season; history/standings change once per gameweek
    bootstrap_cache_control: str = field(
        default_factory=lambda: os.getenv("BOOTSTRAP_CACHE_CONTROL", "s-maxage=3600, stale-while-revalidate")
    )
    short_cache_control: str = field(
        default_factory=lambda: os.getenv("SHORT_CACHE_CONTROL", "s-maxage=300, stale-while-revalidate")
    )
    no_cache_control: str = "no-cache, no-store, must-revalidate"

    # API server
    api_port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: os.getenv("LOG_FORMAT", "json"))  # json or text

    def validate(self):
        """Validate configuration."""
        errors: List[str] = []

        if self.league_id <= 0:
            errors.append("LEAGUE_ID must be a positive integer")
        if self.live_refresh_interval <= 0:
            errors.append("LIVE_REFRESH_INTERVAL must be positive")
        if self.session_ttl <= 0:
            errors.append("SESSION_TTL must be positive")
        if self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive")
        if self.max_retries < 0:
            errors.append("MAX_RETRIES must not be negative")
        period_ids = [period.id for period in PERIODS]
        if self.default_period not in period_ids:
            errors.append(f"DEFAULT_PERIOD must be one of {', '.join(period_ids)}")
        if self.log_format not in ("json", "text"):
            errors.append("LOG_FORMAT must be 'json' or 'text'")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

        return True

    def cache_policies(self) -> Dict[str, str]:
        """Cache-Control header per proxied upstream endpoint."""
        return {
            "bootstrap": self.bootstrap_cache_control,
            "history": self.short_cache_control,
            "standings": self.short_cache_control,
            "picks": self.no_cache_control,
            "live": self.no_cache_control,
        }

    def __post_init__(self):
        """Validate after initialization."""
        self.log_level = self.log_level.upper()
        self.validate()
