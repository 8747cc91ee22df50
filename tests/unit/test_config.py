# ABOUTME: Unit tests for environment-driven settings.
# ABOUTME: Checks defaults and SHELFMATCH_ prefixed overrides.

from pathlib import Path

import pytest

from shelfmatch.config import DEFAULT_DB_PATH, Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Defaults apply when nothing is configured."""
        monkeypatch.delenv("SHELFMATCH_GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("SHELFMATCH_DEFAULT_CONCURRENCY", raising=False)
        settings = Settings(_env_file=None)
        assert settings.db_path == DEFAULT_DB_PATH
        assert settings.default_concurrency == 3
        assert settings.max_concurrency == 20
        assert settings.prefilter_threshold == 0.85
        assert settings.visual_threshold == 0.70
        assert settings.search_limit == 100
        assert settings.gemini_api_key is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """SHELFMATCH_ variables override defaults."""
        monkeypatch.setenv("SHELFMATCH_GEMINI_API_KEY", "abc")
        monkeypatch.setenv("SHELFMATCH_DEFAULT_CONCURRENCY", "7")
        monkeypatch.setenv("SHELFMATCH_DB_PATH", str(tmp_path / "x.db"))
        settings = Settings(_env_file=None)
        assert settings.gemini_api_key == "abc"
        assert settings.default_concurrency == 7
        assert settings.db_path == tmp_path / "x.db"

    def test_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Values can come from a .env file."""
        monkeypatch.delenv("SHELFMATCH_FOODGRAPH_EMAIL", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("SHELFMATCH_FOODGRAPH_EMAIL=me@example.com\n", encoding="utf-8")
        assert Settings(_env_file=env_file).foodgraph_email == "me@example.com"
