"""Factory that assembles a matcher (AgentLoop) for one platform and model."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_ai.models import Model, infer_model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from agent.completion import PydanticAICompletionService
from agent.extractor import EXTRACT_BGM_TV_PROMPT, EXTRACT_TMDB_PROMPT, AgentMatchExtractor
from agent.loop import AgentLoop
from agent.registry import ToolRegistry
from agent.tools import (
    BgmTvCatalog,
    BgmTvSearchTool,
    BgmTvSubmitTool,
    SubmitTool,
    TmdbCatalog,
    TmdbSearchMovieTool,
    TmdbSearchTvTool,
    TmdbSeasonTool,
)
from config.settings import MatcherSettings
from jobs.models import Platform

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"

# Providers resolved through pydantic-ai's "<provider>:<model>" inference
_INFERRED_PROVIDERS: dict[str, str] = {
    "gemini": "google-gla",
    "deepseek": "deepseek",
    "openrouter": "openrouter",
    "xai": "grok",
}

SUPPORTED_PROVIDERS = frozenset({"anthropic", "openai", *_INFERRED_PROVIDERS})


@dataclass(frozen=True)
class Catalogs:
    """Catalog clients backing the search tools; supplied by the host application."""

    bgm_tv: BgmTvCatalog | None = None
    tmdb: TmdbCatalog | None = None


def _load_system_prompt(platform: Platform) -> str:
    """Load the platform's matching instructions from the prompts directory."""
    path = PROMPTS_DIR / f"{platform.value}.md"
    if path.is_file():
        return path.read_text(encoding="utf-8").strip()
    msg = f"system prompt not found at {path}"
    raise FileNotFoundError(msg)


def build_model(provider: str, model_name: str, settings: MatcherSettings) -> Model:
    """Resolve a provider name and model name into a pydantic-ai model.

    Raises:
        ValueError: If the provider is not supported.
    """
    if provider == "anthropic":
        if settings.proxy_enabled:
            anthropic_provider = AnthropicProvider(
                base_url=settings.proxy_base_url,
                api_key=settings.anthropic_api_key,
            )
        else:
            anthropic_provider = AnthropicProvider(api_key=settings.anthropic_api_key)
        return AnthropicModel(model_name, provider=anthropic_provider)

    if provider == "openai":
        openai_provider = OpenAIProvider(
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key or None,
        )
        return OpenAIChatModel(model_name, provider=openai_provider)

    prefix = _INFERRED_PROVIDERS.get(provider)
    if prefix is None:
        msg = f"unsupported provider: {provider}"
        raise ValueError(msg)
    return infer_model(f"{prefix}:{model_name}")


def build_registry(platform: Platform, catalogs: Catalogs) -> ToolRegistry:
    """Return the toolset for a platform, ending with its submit tool."""
    if platform is Platform.BGM_TV:
        if catalogs.bgm_tv is None:
            msg = "no bgm.tv catalog configured"
            raise ValueError(msg)
        return ToolRegistry([BgmTvSearchTool(catalogs.bgm_tv), BgmTvSubmitTool()])

    if catalogs.tmdb is None:
        msg = "no TMDB catalog configured"
        raise ValueError(msg)
    return ToolRegistry(
        [
            TmdbSearchMovieTool(catalogs.tmdb),
            TmdbSearchTvTool(catalogs.tmdb),
            TmdbSeasonTool(catalogs.tmdb),
            SubmitTool(),
        ]
    )


def create_matcher(
    platform: Platform,
    provider: str,
    model_name: str,
    *,
    settings: MatcherSettings,
    catalogs: Catalogs,
    model: Model | None = None,
) -> AgentLoop:
    """Create an AgentLoop configured for one platform and model.

    Uses a factory function (not a module singleton) because provider and
    model come from each job.

    Args:
        platform: Target catalog the matcher resolves against.
        provider: Provider name (anthropic, openai, gemini, deepseek, openrouter, xai).
        model_name: Provider-specific model name.
        settings: Credentials and model settings.
        catalogs: Clients backing the search tools.
        model: Pre-built model, bypassing provider resolution (tests, custom setups).

    Returns:
        A ready AgentLoop; it holds no per-run state and can be reused.
    """
    model = model or build_model(provider, model_name, settings)
    model_settings = ModelSettings(temperature=settings.temperature, max_tokens=settings.max_tokens)
    extract_prompt = EXTRACT_TMDB_PROMPT if platform.supports_season else EXTRACT_BGM_TV_PROMPT

    completion = PydanticAICompletionService(
        model,
        instructions=_load_system_prompt(platform),
        model_settings=model_settings,
    )
    extractor = AgentMatchExtractor(model, instructions=extract_prompt, model_settings=model_settings)
    return AgentLoop(completion, build_registry(platform, catalogs), extractor)
