"""Fallback extraction of a MatchResult from free-form model text."""

from __future__ import annotations

from typing import Protocol

import structlog
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from agent.errors import classify_model_error
from agent.result import MatchResult

logger = structlog.get_logger()

EXTRACT_BGM_TV_PROMPT = "extract the id and name from the input text"
EXTRACT_TMDB_PROMPT = "extract the id and name and season from the input text"


class MatchExtractor(Protocol):
    async def extract(self, text: str) -> MatchResult: ...


class AgentMatchExtractor:
    """Structured-output agent that reads an answer the matcher gave as plain text."""

    def __init__(
        self,
        model: Model,
        *,
        instructions: str,
        model_settings: ModelSettings | None = None,
    ) -> None:
        self._agent: Agent[None, MatchResult] = Agent(
            model,
            output_type=MatchResult,
            system_prompt=instructions,
            model_settings=model_settings,
            retries=1,
        )

    async def extract(self, text: str) -> MatchResult:
        logger.info("agent.extract", chars=len(text))
        try:
            result = await self._agent.run(text)
        except Exception as exc:
            classified = classify_model_error(exc)
            if classified is None:
                raise
            raise classified from exc
        return result.output
