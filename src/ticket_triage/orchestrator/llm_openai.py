"""
src/ticket_triage/orchestrator/llm_openai.py

OpenAI Responses API wrapper for the reasoning engine.
- get_client(): cached AsyncOpenAI client built from the environment
- build_reasoning_options(): per-run overrides over configured defaults
- extract_tool_calls(): normalise function_call output items
- OpenAIResponsesEngine: one engine turn per create_turn() call, chained by previous_response_id
"""


import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from ticket_triage import config
from ticket_triage.orchestrator.models import (
    EngineResponse,
    EngineTurn,
    ReasonerError,
    ReasoningOverrides,
    TokenUsage,
    ToolCall,
)


logger = logging.getLogger(__name__)

_client: Optional[AsyncOpenAI] = None


class ReasoningEngine(Protocol):
    """Anything that can take one turn: the OpenAI client below, or a stub in tests."""

    async def create_turn(self, turn: EngineTurn) -> EngineResponse:
        ...


def get_client() -> AsyncOpenAI:
    """Build (once) the AsyncOpenAI client. Raises ReasonerError when no API key is set."""

    global _client

    if _client is not None:
        return _client

    api_key = config.openai_api_key()
    if not api_key:
        raise ReasonerError("OPENAI_API_KEY is not set.")

    _client = AsyncOpenAI(
        api_key=api_key,
        base_url=config.openai_base_url(),
        max_retries=config.OPENAI_MAX_RETRIES,
    )

    return _client

def reset_client() -> None:

    global _client
    _client = None

def build_reasoning_options(overrides: Optional[ReasoningOverrides] = None) -> Dict[str, Any]:

    overrides = overrides or ReasoningOverrides()

    return {
        "model": overrides.model or config.DEFAULT_MODEL,
        "temperature": config.DEFAULT_TEMPERATURE if overrides.temperature is None else overrides.temperature,
        "max_output_tokens": overrides.max_output_tokens or config.DEFAULT_MAX_OUTPUT_TOKENS,
    }

def extract_tool_calls(response: Any) -> List[ToolCall]:
    """
    Normalise function calls from a Responses API response.

    Arguments stay as the raw JSON string; decoding and validation belong to the router.
    """

    out = []

    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "function_call":
            continue
        call_id = getattr(item, "call_id", None) or getattr(item, "id", None) or str(uuid.uuid4())
        out.append(ToolCall(call_id=call_id, name=item.name, arguments=item.arguments or "{}"))

    return out

def _extract_usage(response: Any) -> Optional[TokenUsage]:

    usage = getattr(response, "usage", None)

    if not usage:
        return None

    return TokenUsage(
        input_tokens=getattr(usage, "input_tokens", 0) or 0,
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


class OpenAIResponsesEngine:

    def __init__(self, client: Optional[AsyncOpenAI] = None):

        self._client = client

    @property
    def client(self) -> AsyncOpenAI:

        if self._client is None:
            self._client = get_client()

        return self._client

    async def create_turn(self, turn: EngineTurn) -> EngineResponse:

        kwargs: Dict[str, Any] = {
            "model": turn.model,
            "instructions": turn.instructions,
            "input": turn.input,
            "tools": turn.tools,
            "temperature": turn.temperature,
            "max_output_tokens": turn.max_output_tokens,
            "metadata": turn.metadata,
            "parallel_tool_calls": turn.parallel_tool_calls,
        }

        if turn.previous is not None:
            if turn.previous.run_id != turn.run_id:
                raise ReasonerError("Response handle was issued for a different run.")
            kwargs["previous_response_id"] = turn.previous.token

        resp = await self.client.responses.create(**kwargs)

        return EngineResponse(
            response_id=resp.id,
            tool_calls=extract_tool_calls(resp),
            output_text=getattr(resp, "output_text", "") or "",
            usage=_extract_usage(resp),
            raw=resp,
        )
