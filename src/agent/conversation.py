"""Conversation turns and content blocks exchanged with the completion backend."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Text:
    text: str


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Output of a tool, answering the ToolCall with the same id."""

    call_id: str
    content: str


Block = Text | ToolCall | ToolResult


@dataclass(frozen=True, slots=True)
class UserTurn:
    content: tuple[Block, ...]


@dataclass(frozen=True, slots=True)
class AssistantTurn:
    content: tuple[Block, ...]


Turn = UserTurn | AssistantTurn


class Conversation:
    """Append-only sequence of turns owned by a single agent loop run.

    Turns are immutable and never removed; a ToolResult may only be appended
    after the ToolCall it answers.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []
        self._open_calls: set[str] = set()

    def append(self, turn: Turn) -> None:
        for block in turn.content:
            if isinstance(block, ToolCall):
                self._open_calls.add(block.id)
            elif isinstance(block, ToolResult):
                if block.call_id not in self._open_calls:
                    msg = f"tool result for unknown call id {block.call_id!r}"
                    raise ValueError(msg)
                self._open_calls.discard(block.call_id)
        self._turns.append(turn)

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __len__(self) -> int:
        return len(self._turns)
