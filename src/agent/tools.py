"""Catalog tools offered to the matching agent.

Each tool is one variant of a closed set: a name, a description for the model,
and a pydantic argument model that doubles as the declared input schema.
The tools delegate to catalog clients supplied by the host application.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Protocol

import structlog
from pydantic import BaseModel, Field

from agent.result import MatchResult

logger = structlog.get_logger()

SUBMIT_TOOL_NAME = "submit"


class BgmTvCatalog(Protocol):
    """Search access to Bangumi (bgm.tv)."""

    async def search_subjects(self, query: str, start_air_year: str | None) -> Any: ...


class TmdbCatalog(Protocol):
    """Search and season lookup against TMDB."""

    async def search_tv(self, query: str, year: int | None) -> Any: ...

    async def search_movie(self, query: str, year: int | None) -> Any: ...

    async def tv_seasons(self, tv_id: int) -> Any: ...


class BgmTvSearchArgs(BaseModel):
    query: str = Field(description="The search query for bgm tv")
    start_air_year: str | None = Field(
        default=None, description="The start year for the search, example: 2024"
    )


class TmdbSearchArgs(BaseModel):
    query: str = Field(description="The search query, main title only")
    year: int | None = Field(default=None, description="(Optional) The air year, example: 2024")


class TmdbSeasonArgs(BaseModel):
    tv_id: int = Field(description="The TMDB id of the TV show")


class CatalogTool(ABC):
    """Base for tool variants. Subclasses set the class attributes and implement invoke()."""

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[BaseModel]]

    @classmethod
    def parameters_schema(cls) -> dict[str, Any]:
        return cls.args_model.model_json_schema()

    @abstractmethod
    async def invoke(self, args: Any) -> Any: ...


class BgmTvSearchTool(CatalogTool):
    name = "bgm_tv_search"
    description = "Search for anime subjects on Bangumi (bgm.tv)"
    args_model = BgmTvSearchArgs

    def __init__(self, catalog: BgmTvCatalog) -> None:
        self._catalog = catalog

    async def invoke(self, args: BgmTvSearchArgs) -> Any:
        logger.info("tool.bgm_tv_search", query=args.query, start_air_year=args.start_air_year)
        return await self._catalog.search_subjects(args.query, args.start_air_year)


class TmdbSearchTvTool(CatalogTool):
    name = "tmdb_search_tv_show"
    description = "Search for TV shows on TMDB"
    args_model = TmdbSearchArgs

    def __init__(self, catalog: TmdbCatalog) -> None:
        self._catalog = catalog

    async def invoke(self, args: TmdbSearchArgs) -> Any:
        logger.info("tool.tmdb_search_tv_show", query=args.query, year=args.year)
        return await self._catalog.search_tv(args.query, args.year)


class TmdbSearchMovieTool(CatalogTool):
    name = "tmdb_search_movie"
    description = "Search for movies on TMDB"
    args_model = TmdbSearchArgs

    def __init__(self, catalog: TmdbCatalog) -> None:
        self._catalog = catalog

    async def invoke(self, args: TmdbSearchArgs) -> Any:
        logger.info("tool.tmdb_search_movie", query=args.query, year=args.year)
        return await self._catalog.search_movie(args.query, args.year)


class TmdbSeasonTool(CatalogTool):
    name = "tmdb_season"
    description = "Get the season list (names, numbers, air dates) of a TMDB TV show"
    args_model = TmdbSeasonArgs

    def __init__(self, catalog: TmdbCatalog) -> None:
        self._catalog = catalog

    async def invoke(self, args: TmdbSeasonArgs) -> Any:
        logger.info("tool.tmdb_season", tv_id=args.tv_id)
        return await self._catalog.tv_seasons(args.tv_id)


class SubmitTool(CatalogTool):
    """Terminal tool. The agent loop ends on this call and never executes it."""

    name = SUBMIT_TOOL_NAME
    description = (
        "Submit the match result. Leave id empty when there is no confident match."
    )
    args_model = MatchResult

    @classmethod
    def parameters_schema(cls) -> dict[str, Any]:
        schema = super().parameters_schema()
        schema["required"] = ["confidence_score"]
        return schema

    async def invoke(self, args: MatchResult) -> None:
        return None


class BgmTvSubmitTool(SubmitTool):
    """Bangumi has no seasons, so the season field is hidden from the model."""

    @classmethod
    def parameters_schema(cls) -> dict[str, Any]:
        schema = super().parameters_schema()
        schema["properties"].pop("season", None)
        return schema
