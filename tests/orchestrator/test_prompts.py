"""Tests for system and user prompt rendering."""

from datetime import datetime, timedelta, timezone

from ticket_triage.orchestrator.models import (
    ContractorSearchContext,
    ConversationMessage,
    PromptContext,
    RunParams,
    SearchLocation,
)
from ticket_triage.orchestrator.prompts import (
    BASE_SYSTEM_PROMPT,
    build_initial_input,
    build_system_prompt,
    build_user_prompt,
    format_timestamp,
)


def _conversation(n):
    start = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    return [
        ConversationMessage(
            id=f"m{i}",
            role="user" if i % 2 else "assistant",
            body=f"message {i}",
            timestamp=start + timedelta(hours=i),
            channel="WHATSAPP",
        )
        for i in range(n)
    ]


class TestSystemPrompt:

    def test_no_context_is_base_prompt(self):
        assert build_system_prompt() == BASE_SYSTEM_PROMPT
        assert build_system_prompt(PromptContext()) == BASE_SYSTEM_PROMPT

    def test_context_directives(self):
        prompt = build_system_prompt(PromptContext(
            property_name="Harbour View", portfolio_name="Uptown", escalation_contact="ops@example.com",
        ))

        assert prompt.startswith(BASE_SYSTEM_PROMPT + "\n\nContext:\n")
        assert '"Harbour View"' in prompt
        assert '"Uptown" portfolio' in prompt
        assert prompt.endswith("contact ops@example.com.")

    def test_partial_context(self):
        prompt = build_system_prompt(PromptContext(escalation_contact="Sam"))

        assert "Harbour" not in prompt
        assert prompt.count("\n", len(BASE_SYSTEM_PROMPT)) == 3


class TestFormatTimestamp:

    def test_utc_with_milliseconds(self):
        assert format_timestamp(datetime(2025, 3, 4, 15, 30, 1, 250000, tzinfo=timezone.utc)) == "2025-03-04T15:30:01.250Z"

    def test_offset_converted_to_utc(self):
        eastern = timezone(timedelta(hours=-4))
        assert format_timestamp(datetime(2025, 3, 4, 11, 30, tzinfo=eastern)) == "2025-03-04T15:30:00.000Z"

    def test_naive_taken_as_utc(self):
        assert format_timestamp(datetime(2025, 3, 4, 15, 30)) == "2025-03-04T15:30:00.000Z"


class TestUserPrompt:

    def test_minimal_ticket(self, run_params):
        assert build_user_prompt(run_params) == "\n".join([
            "# Ticket Summary",
            "Kitchen faucet has been leaking since Monday.",
            "",
            "# Latest Message",
            "Channel: EMAIL",
            "Direction: INBOUND",
            "Author: Jordan (tenant)",
            "Received: 2025-03-04T15:30:00.000Z",
            "",
            "Water is pooling under the sink",
            "",
            "# Tool Guidance",
            "- Use categorize_and_triage first to classify urgency and capture a short summary/checklist.",
            "- Call search_contractors when contractor suggestions would help move the ticket forward.",
            "",
        ])

    def test_deterministic(self, run_params):
        assert build_user_prompt(run_params) == build_user_prompt(run_params)

    def test_sections_in_order(self, run_params):
        params = run_params.model_copy(update={
            "conversation": _conversation(2),
            "agent_instructions": "Keep it brief.",
            "hinted_category": "MAINTENANCE",
        })
        prompt = build_user_prompt(params)

        headings = [line for line in prompt.splitlines() if line.startswith("# ")]
        assert headings == [
            "# Ticket Summary",
            "# Latest Message",
            "# Conversation Snippet",
            "# Agent Instructions",
            "# Category Hint",
            "# Tool Guidance",
        ]
        assert "Keep it brief." in prompt
        assert "\nMAINTENANCE\n" in prompt

    def test_conversation_window_keeps_last_six(self, run_params):
        prompt = build_user_prompt(run_params.model_copy(update={"conversation": _conversation(8)}))

        assert "message 0" not in prompt
        assert "message 1" not in prompt
        assert "- [user] (WHATSAPP) 2025-03-01T16:00:00.000Z: message 7" in prompt
        assert prompt.index("message 2") < prompt.index("message 7")

    def test_no_author_line_without_label(self, run_params):
        last = run_params.last_message.model_copy(update={"author_label": None})
        prompt = build_user_prompt(run_params.model_copy(update={"last_message": last}))

        assert "Author:" not in prompt

    def test_search_defaults_in_guidance(self, run_params):
        params = run_params.model_copy(update={
            "contractor_search_context": ContractorSearchContext(
                location=SearchLocation(postal_code="E2L 4L1"), specialty="plumbing",
            ),
        })
        prompt = build_user_prompt(params)

        assert "- Default postal code for contractor search: E2L 4L1." in prompt
        assert "- Preferred specialty: plumbing." in prompt

    def test_initial_input_is_one_user_message(self, run_params):
        items = build_initial_input(run_params)

        assert items == [{"role": "user", "type": "message", "content": build_user_prompt(run_params)}]

    def test_category_hint_is_free_text(self, run_params):
        params = RunParams.model_validate({
            **run_params.model_dump(), "hinted_category": "  plumbing, maybe heating  ",
        })
        prompt = build_user_prompt(params)

        assert "# Category Hint\nplumbing, maybe heating\n" in prompt

    def test_blank_category_hint_is_omitted(self, run_params):
        prompt = build_user_prompt(run_params.model_copy(update={"hinted_category": "   "}))

        assert "# Category Hint" not in prompt
