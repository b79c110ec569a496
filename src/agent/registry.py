"""Registry that dispatches tool calls by name with validated arguments."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from agent.errors import FatalError
from agent.tools import CatalogTool

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """What the completion backend is told about a tool."""

    name: str
    description: str
    parameters: dict[str, Any]


class ToolRegistry:
    """Name-to-tool lookup over a fixed set of tool variants.

    Example:
        registry = ToolRegistry([TmdbSearchTvTool(catalog), SubmitTool()])
        output = await registry.call("tmdb_search_tv_show", '{"query": "Frieren"}')
    """

    def __init__(self, tools: Iterable[CatalogTool] = ()) -> None:
        self._tools: dict[str, CatalogTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: CatalogTool) -> None:
        """Register a tool instance.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if tool.name in self._tools:
            msg = f"Tool with name '{tool.name}' already registered"
            raise ValueError(msg)
        self._tools[tool.name] = tool

    def get(self, name: str) -> CatalogTool | None:
        return self._tools.get(name)

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(name=tool.name, description=tool.description, parameters=tool.parameters_schema())
            for tool in self._tools.values()
        ]

    async def call(self, name: str, arguments: str) -> str:
        """Validate JSON arguments against the tool's model, invoke it, and return JSON text.

        Args:
            name: Registered tool name.
            arguments: JSON-encoded argument object.

        Returns:
            The tool output encoded as JSON.

        Raises:
            FatalError: Unknown tool or arguments that fail validation.
            TransientError: Propagated from the backing catalog.
        """
        tool = self.get(name)
        if tool is None:
            msg = f"unknown tool {name!r}"
            raise FatalError(msg)
        try:
            args = tool.args_model.model_validate_json(arguments or "{}")
        except ValidationError as exc:
            msg = f"invalid arguments for {name}: {exc.errors(include_url=False)}"
            raise FatalError(msg) from exc

        output = await tool.invoke(args)
        return json.dumps(output, ensure_ascii=False, default=str)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
