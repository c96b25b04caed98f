"""Shared fixtures: run parameters, a scripted reasoning engine and tool-call builders."""

import json
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union

import pytest

from ticket_triage.orchestrator.models import (
    EngineResponse,
    EngineTurn,
    LastMessage,
    RunParams,
    TokenUsage,
    ToolCall,
)


class ScriptedEngine:
    """Reasoning engine stub: replays canned responses and records every turn it receives."""

    def __init__(self, script: Union[List[EngineResponse], Callable[[int, EngineTurn], EngineResponse]]):
        self.script = script
        self.turns: List[EngineTurn] = []

    async def create_turn(self, turn: EngineTurn) -> EngineResponse:
        self.turns.append(turn)
        n = len(self.turns)
        if callable(self.script):
            return self.script(n, turn)
        if self.script:
            return self.script.pop(0)
        return EngineResponse(response_id=f"resp-{n}", output_text="done")


def make_call(name: str, arguments: Any = None, call_id: Optional[str] = None) -> ToolCall:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
    return ToolCall(call_id=call_id or f"call-{name}", name=name, arguments=raw)


def make_response(*calls: ToolCall, response_id: str = "resp", text: str = "", usage: Optional[TokenUsage] = None):
    return EngineResponse(response_id=response_id, tool_calls=list(calls), output_text=text, usage=usage)


TRIAGE_ARGS = {
    "subject": "Leaking faucet",
    "latestMessageText": "Water is pooling under the sink",
    "direction": "INBOUND",
    "channel": "EMAIL",
}

TRIAGE_RESULT = {
    "category": "MAINTENANCE",
    "priority": "MEDIUM",
    "summary": "Tenant reports a leaking faucet",
    "checklist": [],
    "requiresHumanReview": False,
}


@pytest.fixture
def run_params() -> RunParams:
    return RunParams(
        ticket_id="t-1",
        subject="Leaking faucet",
        ticket_summary="Kitchen faucet has been leaking since Monday.",
        last_message=LastMessage(
            id="m-1",
            body="Water is pooling under the sink",
            direction="INBOUND",
            channel="EMAIL",
            received_at=datetime(2025, 3, 4, 15, 30, tzinfo=timezone.utc),
            author_label="Jordan (tenant)",
        ),
    )


@pytest.fixture
def engine_factory():
    return ScriptedEngine


@pytest.fixture
def call_factory():
    return make_call


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def triage_args() -> dict:
    return dict(TRIAGE_ARGS)


@pytest.fixture
def triage_result() -> dict:
    return dict(TRIAGE_RESULT)
