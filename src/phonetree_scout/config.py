"""
Application configuration with environment-driven settings.
"""

from functools import lru_cache
import os
from typing import Literal
from urllib.parse import urlencode

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "phonetree-scout"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Public base URL used to build dashboard links and Twilio callbacks
    base_url: str = Field(
        default="http://localhost:3000",
        description="Externally reachable base URL of this service",
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Live call retention
    session_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        description="Idle time after which an unobserved call session is evicted.",
    )
    sweep_interval_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Interval between retention sweeps.",
    )
    observer_queue_size: int = Field(
        default=256,
        ge=1,
        description="Per-dashboard outbox size before messages are dropped.",
    )
    release_on_completion: bool = Field(
        default=False,
        description="Delete the call session right after it has been archived.",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def dashboard_url(self, call_sid: str, company_id: str | None = None) -> str:
        params = {"callSid": call_sid}
        if company_id:
            params["companyId"] = company_id
        return f"{self.base_url.rstrip('/')}/dashboard?{urlencode(params)}"


@lru_cache
def _get_settings_cached() -> Settings:
    return Settings()


def get_settings() -> Settings:
    # Environment changes under pytest must be visible to each test.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()
