"""Tests for environment-driven settings."""

from __future__ import annotations

from config.settings import MatcherSettings


class TestMatcherSettings:
    def test_defaults(self) -> None:
        settings = MatcherSettings()

        assert settings.temperature == 0.2
        assert settings.max_tokens == 8192
        assert settings.retry_count == 3
        assert settings.retry_delay == 10.0
        assert settings.proxy_enabled is False

    def test_env_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("MATCHER_RETRY_COUNT", "5")
        monkeypatch.setenv("MATCHER_PROXY_ENABLED", "true")
        monkeypatch.setenv("MATCHER_LOG_LEVEL", "debug")

        settings = MatcherSettings()

        assert settings.retry_count == 5
        assert settings.proxy_enabled is True
        assert settings.log_level == "debug"

    def test_dotenv_file(self, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("MATCHER_OPENAI_BASE_URL=http://llm.local/v1\n")

        settings = MatcherSettings(_env_file=env_file)

        assert settings.openai_base_url == "http://llm.local/v1"
