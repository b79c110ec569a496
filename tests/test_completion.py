"""Tests for the pydantic-ai completion backend using FunctionModel."""

from __future__ import annotations

import asyncio

import pytest
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models.function import AgentInfo, FunctionModel

from agent.completion import PydanticAICompletionService, from_model_response, to_model_messages
from agent.conversation import AssistantTurn, Text, ToolCall, ToolResult, UserTurn
from agent.errors import FatalError, TransientError
from agent.registry import ToolRegistry
from agent.tools import SubmitTool, TmdbSearchTvTool

PROMPT = UserTurn(content=(Text('{"titles": ["Frieren"]}'),))


def _send(function, mock_tmdb, conversation=(PROMPT,)):
    service = PydanticAICompletionService(FunctionModel(function), instructions="match it")
    specs = ToolRegistry([TmdbSearchTvTool(mock_tmdb), SubmitTool()]).specs()
    return asyncio.run(service.send(conversation, specs))


class TestSend:
    def test_tools_and_instructions_reach_the_model(self, mock_tmdb) -> None:
        seen: dict = {}

        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            seen["tools"] = [tool.name for tool in info.function_tools]
            seen["first"] = messages[0]
            return ModelResponse(parts=[TextPart("ok")])

        blocks = _send(respond, mock_tmdb)

        assert blocks == [Text("ok")]
        assert seen["tools"] == ["tmdb_search_tv_show", "submit"]
        first = seen["first"]
        assert isinstance(first, ModelRequest)
        assert isinstance(first.parts[0], SystemPromptPart)
        assert first.parts[0].content == "match it"
        assert isinstance(first.parts[1], UserPromptPart)

    def test_tool_calls_are_returned_in_order(self, mock_tmdb) -> None:
        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            return ModelResponse(
                parts=[
                    TextPart("searching"),
                    ToolCallPart("tmdb_search_tv_show", {"query": "Frieren"}, tool_call_id="c-1"),
                ]
            )

        blocks = _send(respond, mock_tmdb)

        assert blocks == [
            Text("searching"),
            ToolCall(id="c-1", name="tmdb_search_tv_show", arguments={"query": "Frieren"}),
        ]

    def test_rate_limit_is_transient(self, mock_tmdb) -> None:
        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise ModelHTTPError(status_code=429, model_name="function")

        with pytest.raises(TransientError):
            _send(respond, mock_tmdb)

    def test_bad_request_is_fatal(self, mock_tmdb) -> None:
        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise ModelHTTPError(status_code=400, model_name="function")

        with pytest.raises(FatalError):
            _send(respond, mock_tmdb)

    def test_unknown_errors_propagate(self, mock_tmdb) -> None:
        def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise KeyError("boom")

        with pytest.raises(KeyError):
            _send(respond, mock_tmdb)


class TestMessageMapping:
    def test_tool_result_carries_the_tool_name(self) -> None:
        call = ToolCall(id="c-1", name="tmdb_season", arguments={"tv_id": 1})
        conversation = [
            PROMPT,
            AssistantTurn(content=(Text("checking seasons"),)),
            AssistantTurn(content=(call,)),
            UserTurn(content=(ToolResult(call_id="c-1", content="[]"),)),
        ]

        messages = to_model_messages(conversation, instructions="sys")

        assert len(messages) == 3
        response = messages[1]
        assert isinstance(response, ModelResponse)
        assert [type(p) for p in response.parts] == [TextPart, ToolCallPart]
        (tool_return,) = messages[2].parts
        assert isinstance(tool_return, ToolReturnPart)
        assert tool_return.tool_name == "tmdb_season"
        assert tool_return.tool_call_id == "c-1"

    def test_system_prompt_only_on_first_request(self) -> None:
        call = ToolCall(id="c-1", name="submit")
        conversation = [
            PROMPT,
            AssistantTurn(content=(call,)),
            UserTurn(content=(ToolResult(call_id="c-1", content="null"),)),
        ]

        messages = to_model_messages(conversation, instructions="sys")

        assert isinstance(messages[0].parts[0], SystemPromptPart)
        assert not any(isinstance(p, SystemPromptPart) for p in messages[2].parts)

    def test_malformed_tool_arguments_are_fatal(self) -> None:
        response = ModelResponse(parts=[ToolCallPart("submit", "{not json", tool_call_id="c-1")])

        with pytest.raises(FatalError, match="malformed arguments"):
            from_model_response(response)

    def test_non_object_tool_arguments_are_fatal(self) -> None:
        response = ModelResponse(parts=[ToolCallPart("submit", "[1, 2]", tool_call_id="c-1")])

        with pytest.raises(FatalError, match="malformed arguments"):
            from_model_response(response)

    def test_empty_text_parts_are_dropped(self) -> None:
        response = ModelResponse(parts=[TextPart(""), TextPart("answer")])

        assert from_model_response(response) == [Text("answer")]
