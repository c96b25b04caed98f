"""
src/ticket_triage/orchestrator/models.py

Pydantic models for the run envelope, engine turns, tool execution records and audit events.
"""


from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ticket_triage.config import (
    AgentEventType,
    ConversationRole,
    MessageChannel,
    MessageDirection,
)
from ticket_triage.orchestrator.registry import (
    CategorizeAndTriageResult,
    SearchContractorsResult,
    ToolError,
)


# -------- Run envelope ---------------------------------------------------------


class _Frozen(BaseModel):

    model_config = ConfigDict(frozen=True)


class LastMessage(_Frozen):

    id: str
    body: str
    direction: MessageDirection
    channel: MessageChannel
    received_at: datetime
    author_label: Optional[str] = None


class ConversationMessage(_Frozen):

    id: str
    role: ConversationRole
    body: str
    timestamp: datetime
    channel: MessageChannel


class PromptContext(_Frozen):

    property_name: Optional[str] = None
    portfolio_name: Optional[str] = None
    escalation_contact: Optional[str] = None


class SearchLocation(_Frozen):

    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ContractorSearchContext(_Frozen):
    """Defaults applied to search_contractors calls when the engine leaves them out."""

    location: Optional[SearchLocation] = None
    specialty: Optional[str] = None
    limit: Optional[int] = None


class ReasoningOverrides(_Frozen):

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None


class RunParams(_Frozen):
    """Everything one orchestrator run knows about the ticket. Built once, never mutated."""

    ticket_id: str
    subject: str
    ticket_summary: str
    last_message: LastMessage
    conversation: Optional[List[ConversationMessage]] = None
    agent_instructions: Optional[str] = None
    prompt_context: Optional[PromptContext] = None
    hinted_category: Optional[str] = None       # Free text, rendered as given
    contractor_search_context: Optional[ContractorSearchContext] = None
    reasoning: Optional[ReasoningOverrides] = None


# -------- Engine turns ---------------------------------------------------------


@dataclass(frozen=True)
class ResponseHandle:
    """
    Opaque reference to a previous engine turn.

    Only the engine client reads the token. The run id it was minted for travels with it
    so a handle cannot silently continue a different run's session.
    """

    run_id: str
    token: str = field(repr=False)


class ToolCall(BaseModel):

    call_id: str
    name: str
    arguments: str = "{}"       # Raw JSON exactly as the engine sent it


class TokenUsage(BaseModel):

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class EngineTurn(BaseModel):

    model_config = ConfigDict(arbitrary_types_allowed=True)

    run_id: str
    instructions: str
    input: List[Dict[str, Any]]
    tools: List[Dict[str, Any]]
    model: str
    temperature: float
    max_output_tokens: int
    metadata: Dict[str, str] = Field(default_factory=dict)
    previous: Optional[ResponseHandle] = None
    parallel_tool_calls: bool = False


class EngineResponse(BaseModel):

    response_id: str
    tool_calls: List[ToolCall] = Field(default_factory=list)
    output_text: str = ""
    usage: Optional[TokenUsage] = None
    raw: Any = None


# -------- Tool executions & results --------------------------------------------


class ToolExecutionRecord(_Frozen):
    """
    Audit entry for one tool call.

    `input` is the validated (and context-merged) input model, or the raw decoded
    arguments when validation never succeeded. `output` is the validated result
    model or a ToolError.
    """

    call_id: str
    tool: str
    input: Any
    output: Any

    @property
    def succeeded(self) -> bool:

        return not isinstance(self.output, ToolError)

    def input_payload(self) -> Dict[str, Any]:

        return _payload(self.input)

    def output_payload(self) -> Dict[str, Any]:
        """JSON-ready output, camelCase keys, as fed back to the engine."""

        return _payload(self.output)


def _payload(value: Any) -> Dict[str, Any]:

    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)

    return dict(value) if isinstance(value, dict) else {}


class RunResult(BaseModel):

    response: EngineResponse
    triage: Optional[CategorizeAndTriageResult] = None
    contractors: Optional[SearchContractorsResult] = None
    tool_executions: List[ToolExecutionRecord] = Field(default_factory=list)


class AgentEvent(BaseModel):

    ticket_id: str
    type: AgentEventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    note: Optional[str] = None
    created_at: datetime


class ReasonerError(Exception):
    """Fatal orchestrator failure: bad configuration or a result the caller cannot use."""
