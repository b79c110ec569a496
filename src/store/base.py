"""Persistence contract used by the job runner."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from jobs.models import Platform, WorkItem


class ReviewStatus(str, Enum):
    """Review state of one (anime, platform) mapping."""

    UNMATCHED = "UnMatched"
    READY = "Ready"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    DROPPED = "Dropped"


class MappingStore(Protocol):
    """Records to match and the mapping/season writes for match outcomes.

    Both update methods are idempotent and raise PersistenceError on failure.
    """

    async def list_unmatched(self, platform: Platform, year: int) -> list[WorkItem]:
        """Records from `year` whose `platform` mapping is still unmatched, in a stable order."""
        ...

    async def update_mapping(
        self, item_key: int, platform: Platform, platform_id: str, score: int
    ) -> None:
        """Store the platform id and confidence score and mark the mapping ready for review."""
        ...

    async def update_season(self, item_key: int, season: int) -> None: ...
