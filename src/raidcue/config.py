"""Configuration using Pydantic Settings.

Values come from ``RAIDCUE_*`` environment variables, optionally through a
``.env`` file in the working directory. Clients can also be built directly
from keyword arguments; settings are only a convenience for wiring.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the platform and reporting clients."""

    model_config = SettingsConfigDict(
        env_prefix="RAIDCUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Game platform
    platform_base_url: str = "https://www.bungie.net"
    platform_stats_url: str = "https://stats.bungie.net"
    platform_api_key: str | None = None
    platform_concurrency: int = Field(
        20,
        ge=1,
        description="Maximum simultaneous platform requests",
    )
    platform_auth_prefixes: list[str] = Field(
        default_factory=lambda: ["/Platform/"],
        description="Path prefixes that get the API key header",
    )

    # Reporting service
    reporting_base_url: str = "http://localhost:8080/api"

    # Transport
    request_timeout_seconds: float = Field(30.0, gt=0)
    retry_budget: int = Field(0, ge=0)
    backoff_seconds: float = Field(0.2, ge=0)

    # Reference data
    manifest_max_age_seconds: float = Field(3600.0, gt=0)
    store_path: str = "raidcue.db"

    @field_validator("platform_base_url", "platform_stats_url", "reporting_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


def get_settings() -> Settings:
    return Settings()
