"""
Central configuration via pydantic-settings.
Backend location and registration rules are read from environment variables / .env file.
"""
from __future__ import annotations

from typing import Optional

import aiohttp
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend ───────────────────────────────────────────────────────────────
    API_BASE_URL: str = "http://localhost:8080"
    API_TIMEOUT_SECONDS: float = 15.0

    # Sent as the Jwt-Token header when present
    API_TOKEN: Optional[str] = None

    # ── Registration rules ────────────────────────────────────────────────────
    MIN_AGE: int = 60
    MAX_AGE: int = 120

    # PH-only app: filled in automatically once a birthday is entered
    DEFAULT_COUNTRY: str = "Philippines"

    MIN_INTERESTS: int = 2
    MIN_LOOKING_FOR: int = 2

    # Profile photo + 5 additional
    MAX_PROFILE_PHOTOS: int = 6

    # ── Misc ──────────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ─────────────────────────────────────────────────────────────────────────

    @property
    def api_base_url(self) -> str:
        """Base URL without a trailing slash so endpoint paths can be appended."""
        return self.API_BASE_URL.rstrip("/")

    @property
    def api_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.API_TIMEOUT_SECONDS)


settings = Settings()
