"""Tests for environment-driven settings."""

import os

import pytest
from pydantic import ValidationError

from raidcue.config import Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test away from any real .env and RAIDCUE_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("RAIDCUE_"):
            monkeypatch.delenv(name)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.platform_concurrency == 20
        assert settings.platform_api_key is None
        assert settings.platform_auth_prefixes == ["/Platform/"]
        assert settings.retry_budget == 0
        assert settings.manifest_max_age_seconds == 3600

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("RAIDCUE_PLATFORM_API_KEY", "abc123")
        monkeypatch.setenv("RAIDCUE_PLATFORM_CONCURRENCY", "4")
        monkeypatch.setenv("RAIDCUE_REPORTING_BASE_URL", "https://reports.test/api/")

        settings = Settings()

        assert settings.platform_api_key == "abc123"
        assert settings.platform_concurrency == 4
        assert settings.reporting_base_url == "https://reports.test/api"

    def test_env_file_read(self, tmp_path):
        (tmp_path / ".env").write_text("RAIDCUE_RETRY_BUDGET=2\n")
        assert Settings().retry_budget == 2

    def test_zero_concurrency_rejected(self, monkeypatch):
        monkeypatch.setenv("RAIDCUE_PLATFORM_CONCURRENCY", "0")
        with pytest.raises(ValidationError):
            Settings()
