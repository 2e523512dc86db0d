"""
agency_api/config.py — Pydantic BaseSettings configuration
Covers: server, admission gate window, read-endpoint throttling,
        document store location, admin key.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 5000

    # ── CORS — the site frontend (Vite dev server + production domain) ────────
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # ── Admission gate — fixed window on write endpoints ──────────────────────
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_max_requests: int = 5
    # Upper bound on tracked client identities before LRU eviction
    rate_limit_max_identities: int = 10_000
    # Honour X-Forwarded-For only when running behind a known proxy
    trust_proxy_headers: bool = False

    # ── Admin routes — unset means open (matches the original deployment) ────
    admin_api_key: Optional[str] = None

    # ── Document store — None keeps everything in memory ─────────────────────
    data_dir: Optional[str] = "data"

    # ── Pagination defaults ───────────────────────────────────────────────────
    contact_page_size: int = 20
    portfolio_page_size: int = 12
    featured_limit: int = 6
    related_items_limit: int = 4

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("rate_limit_window_ms", "rate_limit_max_requests", "rate_limit_max_identities")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("rate limit settings must be > 0")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
