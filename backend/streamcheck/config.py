"""
Checker configuration.
Uses SC_CHECKER_ prefix; credentials and transport settings live in shared.config.
"""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CheckerSettings(BaseSettings):
    """Analysis defaults; every field can be overridden from the command line."""

    model_config = SettingsConfigDict(
        env_prefix="SC_CHECKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Classification
    threshold: float = Field(default=0.5, description="Minimum on-stream share of known matches to pass")
    buffer_hours: float = Field(default=0.0, description="Tolerance added on both sides of each broadcast")

    # Window
    days: int = Field(default=30, description="Window length when no end bound is known")
    event_start_month: int = Field(default=12, description="Default event start month (UTC)")
    event_start_day: int = Field(default=3, description="Default event start day (UTC)")
    event_end_month: int = Field(default=12, description="Default event end month (UTC)")
    event_end_day: int = Field(default=19, description="Default event end day (UTC)")
    event_end_hour: int = Field(default=8)
    event_end_minute: int = Field(default=5)

    # Fetching
    concurrency: int = Field(default=1, description="Parallel match-detail fetches per participant")
    page_size: int = Field(default=200, description="Match ids requested per page")
    max_matches: Optional[int] = Field(default=None, description="Cap on match ids per participant")
    max_retries: int = Field(default=5, description="Attempts per request, including the first")
    backoff_ms: int = Field(default=1000, description="First retry delay; grows by 1.5x")

    # Cache and output
    use_cache: bool = True
    cache_dir: str = ".cache"
    output_csv: Optional[str] = "output/stream-check.csv"


def get_checker_settings() -> CheckerSettings:
    """Load checker settings from the environment and .env."""
    return CheckerSettings()
