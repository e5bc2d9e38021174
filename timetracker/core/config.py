"""Environment-driven configuration.

Every setting is read once, when ``get_settings`` is first called, and cached
for the life of the process. The two backend values (``BACKEND_URL`` and
``BACKEND_API_KEY``) may be left empty: the app still boots, but the data
gateway it builds refuses every operation.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "TimeTracker Pro"
    LOG_LEVEL: str = "INFO"
    TZ: str = "America/Chicago"

    # ---- Hosted record store
    BACKEND_URL: str = Field(default="", validation_alias=AliasChoices("BACKEND_URL", "DATABASE_URL"))
    BACKEND_API_KEY: str = Field(default="", validation_alias=AliasChoices("BACKEND_API_KEY", "API_KEY"))

    # ---- Passwordless identity
    JWT_SECRET: str = "change-me"
    LINK_TTL_MIN: int = 15
    SESSION_TTL_DAYS: int = 7
    PUBLIC_BASE_URL: str = "http://localhost:8089"

    # ---- Cookie sessions
    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "tt_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 7

    # Comma separated list of browser origins allowed to call the API.
    ALLOWED_ORIGINS: str = ""

    @property
    def backend_configured(self) -> bool:
        return bool(self.BACKEND_URL.strip() and self.BACKEND_API_KEY.strip())

    @property
    def allowed_origins(self) -> list[str]:
        return [item.strip() for item in self.ALLOWED_ORIGINS.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


settings = get_settings()
