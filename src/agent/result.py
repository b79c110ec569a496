"""Structured output model for a catalog match."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class MatchResult(BaseModel):
    """Match submitted by the agent. All fields absent means no confident match."""

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="The id of the anime on the target platform")
    name: str | None = Field(default=None, description="The name of the anime")
    season: int | None = Field(
        default=None, description="The season number of the anime (TV shows only)"
    )
    confidence_score: int | None = Field(
        default=None,
        ge=0,
        le=100,
        description="The confidence score of the match, value range from 0 to 100",
    )

    @property
    def found(self) -> bool:
        return self.id is not None

    @classmethod
    def parse_text(cls, text: str) -> MatchResult | None:
        """Parse a raw model answer as JSON, tolerating a surrounding code fence.

        Returns None when the text is not a structurally valid MatchResult.
        """
        stripped = text.strip()
        fenced = _CODE_FENCE.match(stripped)
        if fenced:
            stripped = fenced.group(1)
        try:
            return cls.model_validate_json(stripped)
        except ValidationError:
            return None
