"""In-process MappingStore for local runs and tests."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from agent.errors import PersistenceError
from jobs.models import Platform, WorkItem
from store.base import ReviewStatus

logger = structlog.get_logger()


@dataclass
class Mapping:
    platform_id: str | None = None
    review_status: ReviewStatus = ReviewStatus.UNMATCHED
    score: int = 0
    updated_at: datetime | None = None


@dataclass
class AnimeRecord:
    item: WorkItem
    mappings: dict[Platform, Mapping] = field(default_factory=dict)
    season_number: int | None = None

    def mapping(self, platform: Platform) -> Mapping:
        return self.mappings.setdefault(platform, Mapping())


class InMemoryMappingStore:
    """Dict-backed store keyed by AniList id; every record starts unmatched on every platform."""

    def __init__(self, items: Iterable[WorkItem] = ()) -> None:
        self._records: dict[int, AnimeRecord] = {}
        self._lock = threading.Lock()
        for item in items:
            self.add(item)

    def add(self, item: WorkItem) -> AnimeRecord:
        record = AnimeRecord(item=item, mappings={p: Mapping() for p in Platform})
        self._records[item.anilist_id] = record
        return record

    def get(self, item_key: int) -> AnimeRecord | None:
        return self._records.get(item_key)

    async def list_unmatched(self, platform: Platform, year: int) -> list[WorkItem]:
        with self._lock:
            return [
                record.item
                for _, record in sorted(self._records.items())
                if record.item.year == year
                and record.mapping(platform).review_status is ReviewStatus.UNMATCHED
            ]

    async def update_mapping(
        self, item_key: int, platform: Platform, platform_id: str, score: int
    ) -> None:
        with self._lock:
            record = self._require(item_key)
            mapping = record.mapping(platform)
            mapping.platform_id = platform_id
            mapping.score = score
            mapping.review_status = ReviewStatus.READY
            mapping.updated_at = datetime.now(tz=UTC)
        logger.info(
            "store.update_mapping",
            anilist_id=item_key,
            platform=platform.value,
            platform_id=platform_id,
            score=score,
        )

    async def update_season(self, item_key: int, season: int) -> None:
        with self._lock:
            self._require(item_key).season_number = season
        logger.info("store.update_season", anilist_id=item_key, season=season)

    def _require(self, item_key: int) -> AnimeRecord:
        record = self._records.get(item_key)
        if record is None:
            msg = f"no anime record with anilist_id={item_key}"
            raise PersistenceError(msg)
        return record
