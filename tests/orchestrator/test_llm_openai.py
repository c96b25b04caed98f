"""Tests for the OpenAI Responses engine wrapper (no network: the client is faked)."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from openai import AsyncOpenAI

from ticket_triage.orchestrator import llm_openai
from ticket_triage.orchestrator.llm_openai import (
    OpenAIResponsesEngine,
    build_reasoning_options,
    extract_tool_calls,
)
from ticket_triage.orchestrator.models import EngineTurn, ReasonerError, ReasoningOverrides, ResponseHandle


def _fake_response(**overrides):
    fields = dict(
        id="resp_1",
        output=[
            SimpleNamespace(type="reasoning", id="rs_1"),
            SimpleNamespace(
                type="function_call", id="fc_1", call_id="call_1",
                name="categorize_and_triage", arguments='{"subject": "Leak"}',
            ),
        ],
        output_text="",
        usage=SimpleNamespace(input_tokens=120, output_tokens=30, total_tokens=150),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _fake_client(response):
    return SimpleNamespace(responses=SimpleNamespace(create=AsyncMock(return_value=response)))


def _turn(previous=None, run_id="run-1"):
    return EngineTurn(
        run_id=run_id,
        instructions="Be helpful.",
        input=[{"role": "user", "type": "message", "content": "hi"}],
        tools=[],
        model="gpt-4.1-mini",
        temperature=0.2,
        max_output_tokens=800,
        metadata={"ticket_id": "t-1"},
        previous=previous,
    )


@pytest.fixture(autouse=True)
def _fresh_client():
    llm_openai.reset_client()
    yield
    llm_openai.reset_client()


class TestClient:

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ReasonerError, match="OPENAI_API_KEY"):
            llm_openai.get_client()

    def test_client_is_cached(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:9999/v1")

        client = llm_openai.get_client()

        assert isinstance(client, AsyncOpenAI)
        assert llm_openai.get_client() is client
        assert str(client.base_url).startswith("http://localhost:9999/v1")


class TestReasoningOptions:

    def test_defaults(self):
        assert build_reasoning_options() == {
            "model": llm_openai.config.DEFAULT_MODEL,
            "temperature": 0.2,
            "max_output_tokens": 800,
        }

    def test_overrides_including_zero_temperature(self):
        options = build_reasoning_options(ReasoningOverrides(model="gpt-4o", temperature=0.0, max_output_tokens=200))

        assert options == {"model": "gpt-4o", "temperature": 0.0, "max_output_tokens": 200}


class TestExtractToolCalls:

    def test_only_function_calls(self):
        calls = extract_tool_calls(_fake_response())

        assert len(calls) == 1
        assert calls[0].call_id == "call_1"
        assert calls[0].name == "categorize_and_triage"
        assert calls[0].arguments == '{"subject": "Leak"}'

    def test_falls_back_to_item_id_and_empty_arguments(self):
        item = SimpleNamespace(type="function_call", call_id=None, id="fc_9", name="search_contractors", arguments="")

        calls = extract_tool_calls(SimpleNamespace(output=[item]))

        assert calls[0].call_id == "fc_9"
        assert calls[0].arguments == "{}"

    def test_no_output(self):
        assert extract_tool_calls(SimpleNamespace(output=None)) == []


class TestEngine:

    @pytest.mark.asyncio
    async def test_first_turn_request(self):
        client = _fake_client(_fake_response())
        engine = OpenAIResponsesEngine(client)

        response = await engine.create_turn(_turn())

        kwargs = client.responses.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4.1-mini"
        assert kwargs["instructions"] == "Be helpful."
        assert kwargs["metadata"] == {"ticket_id": "t-1"}
        assert kwargs["parallel_tool_calls"] is False
        assert "previous_response_id" not in kwargs

        assert response.response_id == "resp_1"
        assert [c.call_id for c in response.tool_calls] == ["call_1"]
        assert response.usage.total_tokens == 150

    @pytest.mark.asyncio
    async def test_follow_up_turn_chains_previous_response(self):
        client = _fake_client(_fake_response(id="resp_2", output=[], output_text="Done."))
        engine = OpenAIResponsesEngine(client)

        response = await engine.create_turn(_turn(previous=ResponseHandle(run_id="run-1", token="resp_1")))

        assert client.responses.create.await_args.kwargs["previous_response_id"] == "resp_1"
        assert response.tool_calls == []
        assert response.output_text == "Done."

    @pytest.mark.asyncio
    async def test_handle_from_another_run_is_rejected(self):
        client = _fake_client(_fake_response())
        engine = OpenAIResponsesEngine(client)

        with pytest.raises(ReasonerError, match="different run"):
            await engine.create_turn(_turn(previous=ResponseHandle(run_id="run-2", token="resp_1")))

        client.responses.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_usage(self):
        engine = OpenAIResponsesEngine(_fake_client(_fake_response(usage=None)))

        response = await engine.create_turn(_turn())

        assert response.usage is None
