"""
Central configuration for the stream checker.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings shared by the CLI and both backend clients."""

    model_config = SettingsConfigDict(
        env_prefix="SC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # .env may carry unrelated keys
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    log_level: str = "INFO"

    # ── HTTP ─────────────────────────────────────────────────
    request_timeout_s: float = 10.0
    connect_timeout_s: float = 5.0
    max_connections: int = 20

    # ── Credentials ──────────────────────────────────────────
    riot_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("RIOT_API_KEY", "SC_RIOT_API_KEY"),
    )
    twitch_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("TWITCH_CLIENT_ID", "SC_TWITCH_CLIENT_ID"),
    )
    twitch_client_secret: str = Field(
        default="",
        validation_alias=AliasChoices("TWITCH_CLIENT_SECRET", "SC_TWITCH_CLIENT_SECRET"),
    )

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = False
    metrics_port: int = 9090

    def missing_credentials(self) -> list[str]:
        """Names of the required secrets that are empty."""
        missing: list[str] = []
        if not self.riot_api_key.strip():
            missing.append("RIOT_API_KEY")
        if not self.twitch_client_id.strip():
            missing.append("TWITCH_CLIENT_ID")
        if not self.twitch_client_secret.strip():
            missing.append("TWITCH_CLIENT_SECRET")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
