"""Tests for the append-only conversation."""

from __future__ import annotations

import pytest

from agent.conversation import AssistantTurn, Conversation, Text, ToolCall, ToolResult, UserTurn


class TestConversation:
    def test_turns_are_kept_in_order(self) -> None:
        conversation = Conversation()
        first = UserTurn(content=(Text("hi"),))
        second = AssistantTurn(content=(Text("hello"),))

        conversation.append(first)
        conversation.append(second)

        assert list(conversation) == [first, second]
        assert conversation.turns == (first, second)
        assert len(conversation) == 2

    def test_tool_result_must_answer_a_prior_call(self) -> None:
        conversation = Conversation()

        with pytest.raises(ValueError, match="unknown call id"):
            conversation.append(UserTurn(content=(ToolResult(call_id="c-1", content="[]"),)))
        assert len(conversation) == 0

    def test_tool_result_after_call(self) -> None:
        conversation = Conversation()
        conversation.append(AssistantTurn(content=(ToolCall(id="c-1", name="tmdb_season"),)))

        conversation.append(UserTurn(content=(ToolResult(call_id="c-1", content="[]"),)))

        with pytest.raises(ValueError):
            conversation.append(UserTurn(content=(ToolResult(call_id="c-1", content="[]"),)))
