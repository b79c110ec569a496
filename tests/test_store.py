"""Tests for the in-memory mapping store."""

from __future__ import annotations

import asyncio

import pytest
from conftest import make_item

from agent.errors import PersistenceError
from jobs.models import Platform
from store.base import ReviewStatus
from store.memory import InMemoryMappingStore


class TestInMemoryMappingStore:
    def test_list_unmatched_filters_year_and_sorts(self) -> None:
        store = InMemoryMappingStore([make_item(3), make_item(1), make_item(2, year=2023)])

        items = asyncio.run(store.list_unmatched(Platform.TMDB, 2024))

        assert [item.anilist_id for item in items] == [1, 3]

    def test_matched_records_are_excluded_per_platform(self, store) -> None:
        asyncio.run(store.update_mapping(1, Platform.TMDB, "42", 77))

        tmdb = asyncio.run(store.list_unmatched(Platform.TMDB, 2024))
        bgm = asyncio.run(store.list_unmatched(Platform.BGM_TV, 2024))

        assert [item.anilist_id for item in tmdb] == [2, 3]
        assert [item.anilist_id for item in bgm] == [1, 2, 3]

    def test_update_mapping_marks_ready(self, store) -> None:
        asyncio.run(store.update_mapping(2, Platform.BGM_TV, "400602", 95))

        mapping = store.get(2).mappings[Platform.BGM_TV]
        assert mapping.platform_id == "400602"
        assert mapping.score == 95
        assert mapping.review_status is ReviewStatus.READY
        assert mapping.updated_at is not None

    def test_updates_are_idempotent(self, store) -> None:
        for _ in range(2):
            asyncio.run(store.update_mapping(1, Platform.TMDB, "42", 77))
            asyncio.run(store.update_season(1, 3))

        record = store.get(1)
        assert record.mappings[Platform.TMDB].platform_id == "42"
        assert record.season_number == 3

    def test_unknown_record_raises_persistence_error(self, store) -> None:
        with pytest.raises(PersistenceError):
            asyncio.run(store.update_mapping(404, Platform.TMDB, "1", 1))
        with pytest.raises(PersistenceError):
            asyncio.run(store.update_season(404, 1))
