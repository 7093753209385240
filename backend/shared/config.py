"""
Central configuration for the Live Crease services.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings shared across the resolver, orchestrator and API."""

    model_config = SettingsConfigDict(
        env_prefix="LC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"

    # ── API ──────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["*"]

    # ── Tracked match ────────────────────────────────────────
    tracked_teams: list[str] = Field(
        default=["india", "pakistan"],
        description="Lower-case team name fragments; a provider match must reference one of them.",
    )

    # ── Cadences ─────────────────────────────────────────────
    live_match_poll_s: float = 30.0
    commentary_poll_s: float = 15.0
    chat_poll_s: float = 10.0

    # ── Provider ─────────────────────────────────────────────
    provider_order: dict[str, list[str]] = Field(
        default={
            "live_match": ["cricapi", "espncricinfo", "sportmonks"],
            "commentary": ["espncricinfo"],
            "match_stats": ["espncricinfo"],
            "live_chat": [],
            "current_matches": ["cricapi", "espncricinfo"],
        },
        description="Provider cascade per feed; first usable payload wins.",
    )
    provider_request_timeout_s: float = 10.0
    provider_max_retries: int = 2
    provider_failure_threshold: int = 3
    provider_recovery_timeout_s: float = 60.0

    cricapi_base_url: str = "https://api.cricapi.com/v1"
    espncricinfo_base_url: str = "https://hs-consumer-api.espncricinfo.com/v1/pages"
    sportmonks_base_url: str = "https://cricket.sportmonks.com/api/v2.0"

    # ESPN Cricinfo needs series/match ids for commentary and scorecard.
    espncricinfo_series_id: str = ""
    espncricinfo_match_id: str = ""

    # ── Provider API keys ────────────────────────────────────
    cricapi_api_key: str = ""
    sportmonks_api_key: str = ""

    # ── Synthesizer ──────────────────────────────────────────
    synthetic_delay_scale: float = Field(
        default=1.0,
        description="Multiplier for the simulated latency of synthesized feeds; 0 disables it.",
    )
    synthetic_seed: int | None = None

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090

    def feed_order(self, feed: str) -> list[str]:
        return list(self.provider_order.get(feed, []))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
