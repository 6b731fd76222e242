"""Tests for environment settings."""

from pathlib import Path

import pytest

from curator.settings.app import AppSettings


class TestAppSettings:
    """Tests for AppSettings."""

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test credentials and paths come from the environment."""
        monkeypatch.setenv("BRAVE_SEARCH_API_KEY", "brave-key")
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
        monkeypatch.setenv("CURATOR_DB_PATH", "data/test.sqlite")

        settings = AppSettings(_env_file=None)

        assert settings.brave_search_api_key == "brave-key"
        assert settings.gemini_api_key == "gemini-key"
        assert settings.db_path == Path("data/test.sqlite")
        assert settings.missing_credentials() == []

    def test_missing_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test unset credentials are listed by variable name."""
        monkeypatch.delenv("BRAVE_SEARCH_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        settings = AppSettings(_env_file=None)

        assert settings.missing_credentials() == [
            "BRAVE_SEARCH_API_KEY",
            "GEMINI_API_KEY",
        ]
