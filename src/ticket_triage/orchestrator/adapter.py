"""
src/ticket_triage/orchestrator/adapter.py

AgentAdapter: the seam the ticket/API layer talks to. It turns a triage or draft-reply
request into RunParams, runs the agent and maps the RunResult to the smaller shapes the
API layer stores.
"""


from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ticket_triage.config import ConversationRole, MessageChannel, MessageDirection, TicketPriority
from ticket_triage.orchestrator.events import EventLogger
from ticket_triage.orchestrator.llm_openai import ReasoningEngine
from ticket_triage.orchestrator.models import (
    ConversationMessage,
    LastMessage,
    ReasonerError,
    RunParams,
    RunResult,
)
from ticket_triage.orchestrator.router import ToolHandlers, run_agent


Urgency = Literal["low", "medium", "high"]


class TriageRequest(BaseModel):

    ticket_id: str
    subject: str
    body: str
    channel: Literal["email", "whatsapp"] = "email"


class DraftReplyRequest(BaseModel):

    ticket_id: str
    conversation: List[ConversationMessage]
    instructions: Optional[str] = None


class TriageOutcome(BaseModel):

    summary: str
    category: str
    urgency: Urgency
    confidence: float


class TokenCounts(BaseModel):

    prompt: int = 0
    completion: int = 0
    total: int = 0


class DraftReply(BaseModel):

    draft: str
    rationale: Optional[str] = None
    tokens: TokenCounts = Field(default_factory=TokenCounts)


AgentRequest = Union[TriageRequest, DraftReplyRequest]
ParamsMapper = Callable[[AgentRequest], Dict[str, Any]]


def map_urgency(priority: TicketPriority) -> Urgency:

    if priority in (TicketPriority.URGENT, TicketPriority.HIGH):
        return "high"
    if priority == TicketPriority.MEDIUM:
        return "medium"

    return "low"

def _channel(value: str) -> MessageChannel:

    return MessageChannel.WHATSAPP if value.upper() == "WHATSAPP" else MessageChannel.EMAIL


class AgentAdapter:

    def __init__(
            self,
            handlers: ToolHandlers,
            *,
            engine: Optional[ReasoningEngine] = None,
            event_logger: Optional[EventLogger] = None,
            params_mapper: Optional[ParamsMapper] = None,
            default_channel: str = "email",
    ):

        self.handlers = handlers
        self.engine = engine
        self.event_logger = event_logger
        self.params_mapper = params_mapper
        self.default_channel = default_channel

    async def _run(self, request: AgentRequest) -> RunResult:

        return await run_agent(
            self.build_run_params(request),
            self.handlers,
            engine=self.engine,
            event_logger=self.event_logger,
        )

    async def triage(self, request: TriageRequest) -> TriageOutcome:
        """Run the agent and reduce its triage to summary/category/urgency. No triage is an error here."""

        result = await self._run(request)

        if result.triage is None:
            raise ReasonerError("Reasoner did not return a triage outcome")

        triage = result.triage

        return TriageOutcome(
            summary=triage.summary,
            category=triage.category.value,
            urgency=map_urgency(triage.priority),
            confidence=0.9 if triage.priority == TicketPriority.URGENT else 0.75,
        )

    async def draft_reply(self, request: DraftReplyRequest) -> DraftReply:

        result = await self._run(request)
        usage = result.response.usage

        return DraftReply(
            draft=result.response.output_text,
            rationale=result.triage.summary if result.triage else None,
            tokens=TokenCounts(
                prompt=usage.input_tokens if usage else 0,
                completion=usage.output_tokens if usage else 0,
                total=usage.total_tokens if usage else 0,
            ),
        )

    # -------- Request -> RunParams -------------------------------------------

    def build_run_params(self, request: AgentRequest) -> RunParams:

        if isinstance(request, TriageRequest):
            fields: Dict[str, Any] = {
                "ticket_id": request.ticket_id,
                "subject": request.subject,
                "ticket_summary": request.body,
                "last_message": self._last_message(request),
            }
        else:
            fields = {
                "ticket_id": request.ticket_id,
                "subject": request.ticket_id,
                "ticket_summary": "\n".join(f"{m.role.value}: {m.body}" for m in request.conversation),
                "last_message": self._last_message(request),
                "conversation": request.conversation,
                "agent_instructions": request.instructions,
            }

        if self.params_mapper:
            fields.update(self.params_mapper(request))

        return RunParams(**fields)

    def _last_message(self, request: AgentRequest) -> LastMessage:

        now = datetime.now(timezone.utc)

        if isinstance(request, DraftReplyRequest) and request.conversation:
            message = request.conversation[-1]
            direction = (
                MessageDirection.OUTBOUND if message.role == ConversationRole.ASSISTANT else MessageDirection.INBOUND
            )
            return LastMessage(
                id=message.id,
                body=message.body,
                direction=direction,
                channel=message.channel,
                received_at=message.timestamp,
            )

        if isinstance(request, TriageRequest):
            body, channel = request.body, request.channel
        else:
            body, channel = "", self.default_channel

        return LastMessage(
            id=request.ticket_id,
            body=body,
            direction=MessageDirection.INBOUND,
            channel=_channel(channel),
            received_at=now,
        )
