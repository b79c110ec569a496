"""Error taxonomy shared by the agent loop, tools, and the job runner."""

from __future__ import annotations

import anthropic
import httpx
import openai
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

# 408 timeout, 409 conflict/overloaded, 429 rate limit
TRANSIENT_STATUS_CODES = frozenset({408, 409, 429})


class MatchError(Exception):
    """Base class for failures while resolving a single item."""


class TransientError(MatchError):
    """Network, rate-limit, or overload condition; the attempt may be retried."""


class FatalError(MatchError):
    """Malformed request, schema violation, or terminal-tool misuse; never retried."""


class PersistenceError(Exception):
    """A mapping or season write failed. Halts the job's background execution."""


def classify_model_error(exc: BaseException) -> MatchError | None:
    """Map a provider/SDK exception onto the match error taxonomy.

    Returns None for exceptions that are not recognised, so callers can let
    them propagate unchanged.
    """
    if isinstance(exc, MatchError):
        return exc
    if isinstance(exc, ModelHTTPError):
        if exc.status_code in TRANSIENT_STATUS_CODES or exc.status_code >= 500:
            return TransientError(f"model HTTP {exc.status_code}: {exc.message}")
        return FatalError(f"model HTTP {exc.status_code}: {exc.message}")
    if isinstance(exc, UnexpectedModelBehavior):
        return TransientError(f"unexpected model behavior: {exc.message}")
    if isinstance(exc, (httpx.TransportError, anthropic.APIConnectionError, openai.APIConnectionError)):
        return TransientError(f"connection error: {exc}")
    return None
