"""Fixed-budget retry around a single matcher run."""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

from agent.errors import TransientError
from agent.result import MatchResult

logger = structlog.get_logger()


class Matcher(Protocol):
    async def run(self, prompt: str) -> MatchResult: ...


async def run_with_retry(
    matcher: Matcher,
    prompt: str,
    *,
    attempts: int,
    delay: float,
) -> MatchResult:
    """Run the matcher, retrying transient failures with a fixed delay.

    FatalError and any other exception propagate on the first occurrence. An
    empty MatchResult ("not found") is a valid outcome and is not retried.

    Args:
        matcher: Anything with an async run(prompt) returning a MatchResult.
        prompt: The per-item user prompt.
        attempts: Total number of attempts (at least one is always made).
        delay: Seconds to sleep between attempts.

    Raises:
        TransientError: The last transient error once the budget is spent.
    """
    attempts = max(attempts, 1)
    for attempt in range(1, attempts):
        try:
            return await matcher.run(prompt)
        except TransientError as exc:
            logger.warning(
                "agent.retry",
                attempt=attempt,
                max_attempts=attempts,
                error=str(exc),
            )
            await asyncio.sleep(delay)
    return await matcher.run(prompt)
