"""Shared test fixtures for anime-match-agent."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from config.settings import MatcherSettings
from jobs.models import MediaType, WorkItem
from store.memory import InMemoryMappingStore


def make_item(anilist_id: int, *, year: int = 2024, title: str | None = None) -> WorkItem:
    return WorkItem(
        anilist_id=anilist_id,
        titles=(title or f"Anime {anilist_id}",),
        year=year,
        media_type=MediaType.TV,
        start_date=f"{year}-04-01",
        episode_count=12,
    )


@pytest.fixture
def settings() -> MatcherSettings:
    """Return default MatcherSettings with retries that do not sleep."""
    return MatcherSettings(retry_delay=0)


@pytest.fixture
def store() -> InMemoryMappingStore:
    """Return a store holding three 2024 records and one 2023 record."""
    return InMemoryMappingStore(
        [make_item(1), make_item(2), make_item(3), make_item(9, year=2023)]
    )


@pytest.fixture
def mock_tmdb() -> MagicMock:
    """Return a mocked TMDB catalog."""
    catalog = MagicMock()
    catalog.search_tv = AsyncMock(return_value={"results": [{"id": 209867, "name": "Frieren"}]})
    catalog.search_movie = AsyncMock(return_value={"results": []})
    catalog.tv_seasons = AsyncMock(return_value=[{"season_number": 1, "air_date": "2023-09-29"}])
    return catalog


@pytest.fixture
def mock_bgm_tv() -> MagicMock:
    """Return a mocked bgm.tv catalog."""
    catalog = MagicMock()
    catalog.search_subjects = AsyncMock(return_value={"data": [{"id": 400602, "name": "葬送のフリーレン"}]})
    return catalog
