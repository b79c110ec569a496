"""Multi-turn tool-calling loop that drives the matcher to a submitted result."""

from __future__ import annotations

import json

import structlog
from pydantic import ValidationError

from agent.completion import CompletionService
from agent.conversation import AssistantTurn, Conversation, Text, ToolCall, ToolResult, UserTurn
from agent.errors import FatalError, TransientError
from agent.extractor import MatchExtractor
from agent.registry import ToolRegistry
from agent.result import MatchResult
from agent.tools import SUBMIT_TOOL_NAME

logger = structlog.get_logger()


class AgentLoop:
    """Send the conversation, act on the reply, repeat until a result is submitted.

    Each round either executes one tool call and feeds its output back, or
    ends the run. A call to the terminal tool ends the run with its arguments
    as the result, without executing the tool. A round with text only is
    parsed as the answer, falling back to the extractor.

    There is no round cap here: callers bound the cost by wrapping run() in
    the retry policy (see agent.runner).
    """

    def __init__(
        self,
        completion: CompletionService,
        registry: ToolRegistry,
        extractor: MatchExtractor,
        *,
        terminal_tool: str = SUBMIT_TOOL_NAME,
    ) -> None:
        self._completion = completion
        self._registry = registry
        self._extractor = extractor
        self._terminal_tool = terminal_tool

    async def run(self, prompt: str) -> MatchResult:
        conversation = Conversation()
        pending = UserTurn(content=(Text(prompt),))
        tools = self._registry.specs()
        round_no = 0

        while True:
            round_no += 1
            blocks = await self._completion.send((*conversation, pending), tools)
            conversation.append(pending)

            terminal = next(
                (b for b in blocks if isinstance(b, ToolCall) and b.name == self._terminal_tool),
                None,
            )
            if terminal is not None:
                logger.info("agent.submit", round=round_no, arguments=terminal.arguments)
                return self._submitted(terminal)

            candidate: str | None = None
            call: ToolCall | None = None
            for block in blocks:
                if isinstance(block, Text):
                    logger.debug("agent.text", round=round_no, text=block.text)
                    candidate = block.text
                    conversation.append(AssistantTurn(content=(block,)))
                elif isinstance(block, ToolCall):
                    # tool calls take priority over any text seen in this round
                    call = block
                    conversation.append(AssistantTurn(content=(block,)))
                    break

            if call is not None:
                logger.info("agent.tool_call", round=round_no, tool=call.name, arguments=call.arguments)
                output = await self._registry.call(call.name, json.dumps(call.arguments))
                logger.debug("agent.tool_result", round=round_no, tool=call.name, chars=len(output))
                pending = UserTurn(content=(ToolResult(call_id=call.id, content=output),))
                continue

            if candidate is None:
                msg = f"model returned neither text nor a tool call (round {round_no})"
                raise TransientError(msg)

            logger.info("agent.text_answer", round=round_no)
            return await self._parse_answer(candidate)

    def _submitted(self, call: ToolCall) -> MatchResult:
        try:
            return MatchResult.model_validate(call.arguments)
        except ValidationError as exc:
            msg = f"invalid {self._terminal_tool} arguments: {call.arguments!r}"
            raise FatalError(msg) from exc

    async def _parse_answer(self, text: str) -> MatchResult:
        parsed = MatchResult.parse_text(text)
        if parsed is not None:
            return parsed
        return await self._extractor.extract(text)
