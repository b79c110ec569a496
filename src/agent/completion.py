"""Completion backend: one model round-trip per call, no agent-side looping."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import structlog
from pydantic_ai.direct import model_request
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelRequestPart,
    ModelResponse,
    ModelResponsePart,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from agent.conversation import Block, Text, ToolCall, ToolResult, Turn, UserTurn
from agent.errors import FatalError, classify_model_error
from agent.registry import ToolSpec

logger = structlog.get_logger()


class CompletionService(Protocol):
    async def send(self, conversation: Sequence[Turn], tools: Sequence[ToolSpec]) -> list[Block]:
        """Send the conversation and return the response's content blocks in order."""
        ...


class PydanticAICompletionService:
    """CompletionService backed by a pydantic-ai model via the direct request API.

    Raises TransientError/FatalError from send() so the retry wrapper can tell
    them apart; unrecognised exceptions propagate unchanged.
    """

    def __init__(
        self,
        model: Model,
        *,
        instructions: str,
        model_settings: ModelSettings | None = None,
    ) -> None:
        self._model = model
        self._instructions = instructions
        self._model_settings = model_settings

    async def send(self, conversation: Sequence[Turn], tools: Sequence[ToolSpec]) -> list[Block]:
        messages = to_model_messages(conversation, instructions=self._instructions)
        params = ModelRequestParameters(
            function_tools=[
                ToolDefinition(
                    name=spec.name,
                    description=spec.description,
                    parameters_json_schema=spec.parameters,
                )
                for spec in tools
            ],
            allow_text_output=True,
        )
        try:
            response = await model_request(
                self._model,
                messages,
                model_settings=self._model_settings,
                model_request_parameters=params,
            )
        except Exception as exc:
            classified = classify_model_error(exc)
            if classified is None:
                raise
            raise classified from exc
        return from_model_response(response)


def to_model_messages(conversation: Sequence[Turn], *, instructions: str) -> list[ModelMessage]:
    """Translate turns into pydantic-ai messages, prefixing the system prompt."""
    messages: list[ModelMessage] = []
    call_names: dict[str, str] = {}
    for turn in conversation:
        if isinstance(turn, UserTurn):
            parts: list[ModelRequestPart] = []
            if not messages and instructions:
                parts.append(SystemPromptPart(content=instructions))
            for block in turn.content:
                if isinstance(block, Text):
                    parts.append(UserPromptPart(content=block.text))
                elif isinstance(block, ToolResult):
                    parts.append(
                        ToolReturnPart(
                            tool_name=call_names.get(block.call_id, ""),
                            content=block.content,
                            tool_call_id=block.call_id,
                        )
                    )
            messages.append(ModelRequest(parts=parts))
        else:
            response_parts: list[ModelResponsePart] = []
            for block in turn.content:
                if isinstance(block, Text):
                    response_parts.append(TextPart(content=block.text))
                elif isinstance(block, ToolCall):
                    call_names[block.id] = block.name
                    response_parts.append(
                        ToolCallPart(tool_name=block.name, args=block.arguments, tool_call_id=block.id)
                    )
            # text and the tool call of one reply are separate turns; send them as one response
            if messages and isinstance(messages[-1], ModelResponse):
                response_parts = [*messages[-1].parts, *response_parts]
                messages.pop()
            messages.append(ModelResponse(parts=response_parts))
    return messages


def from_model_response(response: ModelResponse) -> list[Block]:
    """Keep text and tool-call parts, in order. Thinking and other parts are dropped."""
    blocks: list[Block] = []
    for part in response.parts:
        if isinstance(part, TextPart):
            if part.content:
                blocks.append(Text(part.content))
        elif isinstance(part, ToolCallPart):
            try:
                arguments = part.args_as_dict(raise_if_invalid=True)
            except (ValueError, AssertionError) as exc:
                msg = f"malformed arguments for tool call {part.tool_name}: {part.args!r}"
                raise FatalError(msg) from exc
            blocks.append(ToolCall(id=part.tool_call_id, name=part.tool_name, arguments=arguments))
    return blocks
