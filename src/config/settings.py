"""Environment-based configuration for anime-match-agent."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class MatcherSettings(BaseSettings):
    """Matcher configuration loaded from a dotenv file + environment variables.

    Precedence: env vars > dotenv file > defaults.
    Pass _env_file to the constructor to select which env file to load.
    Keys for gemini, deepseek, openrouter and xai are read by their providers
    from the usual variables (GEMINI_API_KEY, DEEPSEEK_API_KEY, ...).
    """

    model_config = {"env_prefix": "MATCHER_"}

    # Anthropic, optionally routed through a local proxy
    anthropic_api_key: str = "matcher-via-proxy"
    proxy_enabled: bool = False
    proxy_base_url: str = "http://localhost:8100"

    # OpenAI-compatible endpoint
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"

    temperature: float = 0.2
    max_tokens: int = 8192

    # Per-item retry budget for transient failures
    retry_count: int = 3
    retry_delay: float = 10.0

    json_logs: bool = False
    log_level: str = "info"
