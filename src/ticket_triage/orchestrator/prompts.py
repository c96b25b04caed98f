"""
src/ticket_triage/orchestrator/prompts.py

System instructions and the rendered first user turn.

Everything here is a pure function of its arguments: the same RunParams always renders
to the same text, so prompts can be pinned in tests.
"""


from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ticket_triage.config import CONVERSATION_WINDOW
from ticket_triage.orchestrator.models import PromptContext, RunParams


BASE_SYSTEM_PROMPT = (
    "You are a careful property management assistant for residential rentals.\n"
    "\n"
    "Responsibilities:\n"
    "1. Triage inbound messages from tenants, owners and contractors: urgency, channel, next actions.\n"
    "2. Suggest contractors when a ticket needs outside work.\n"
    "3. Draft short, professional replies for a human agent to review.\n"
    "\n"
    "Rules:\n"
    "- Never invent facts. If information is missing, say what is needed.\n"
    "- Flag emergencies (gas, fire, flooding, break-ins) and tell the tenant to call emergency services.\n"
    "- Do not share tenant personal details that are not already in the conversation.\n"
    "- Escalate to the human property manager when the information provided is not enough.\n"
    "- Call one tool at a time and wait for its result."
)


def build_system_prompt(context: Optional[PromptContext] = None) -> str:
    """Base instructions plus any property/portfolio/escalation directives."""

    context = context or PromptContext()
    directives = []

    if context.property_name:
        directives.append(
            f'The primary property in focus is called "{context.property_name}". '
            "Use that name in communications when appropriate."
        )
    if context.portfolio_name:
        directives.append(
            f'You are supporting the "{context.portfolio_name}" portfolio. '
            "Reference it when summarising high-level work."
        )
    if context.escalation_contact:
        directives.append(f"If escalation is required, tell the agent to contact {context.escalation_contact}.")

    if not directives:
        return BASE_SYSTEM_PROMPT

    return BASE_SYSTEM_PROMPT + "\n\nContext:\n" + "\n".join(directives)

def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a trailing Z. Naive values are taken as UTC."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    value = value.astimezone(timezone.utc)

    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")

def build_user_prompt(params: RunParams) -> str:
    """
    Render the ticket into the first user turn.

    Sections, in order: ticket summary, latest message, conversation snippet (last
    CONVERSATION_WINDOW messages, oldest first), agent instructions, category hint and the
    tool guidance block.
    """

    msg = params.last_message
    lines: List[str] = []

    lines.append("# Ticket Summary")
    lines.append(params.ticket_summary.strip())
    lines.append("")

    lines.append("# Latest Message")
    lines.append(f"Channel: {msg.channel.value}")
    lines.append(f"Direction: {msg.direction.value}")
    if msg.author_label:
        lines.append(f"Author: {msg.author_label}")
    lines.append(f"Received: {format_timestamp(msg.received_at)}")
    lines.append("")
    lines.append(msg.body.strip())
    lines.append("")

    if params.conversation:
        lines.append("# Conversation Snippet")
        for m in params.conversation[-CONVERSATION_WINDOW:]:
            lines.append(f"- [{m.role.value}] ({m.channel.value}) {format_timestamp(m.timestamp)}: {m.body}")
        lines.append("")

    if params.agent_instructions:
        lines.append("# Agent Instructions")
        lines.append(params.agent_instructions.strip())
        lines.append("")

    if params.hinted_category and params.hinted_category.strip():
        lines.append("# Category Hint")
        lines.append(params.hinted_category.strip())
        lines.append("")

    ctx = params.contractor_search_context
    lines.append("# Tool Guidance")
    lines.append("- Use categorize_and_triage first to classify urgency and capture a short summary/checklist.")
    lines.append("- Call search_contractors when contractor suggestions would help move the ticket forward.")
    if ctx and ctx.location and ctx.location.postal_code:
        lines.append(f"- Default postal code for contractor search: {ctx.location.postal_code}.")
    if ctx and ctx.specialty:
        lines.append(f"- Preferred specialty: {ctx.specialty}.")
    lines.append("")

    return "\n".join(lines)

def build_initial_input(params: RunParams) -> List[Dict[str, Any]]:

    return [{"role": "user", "type": "message", "content": build_user_prompt(params)}]
