"""
src/ticket_triage/orchestrator/registry.py

Tool schema registry: one ToolDefinition per tool, pairing the input/result models with
the audit event the tool emits and the function that merges run-level context into
validated input.

Tool arguments arrive from the reasoning engine as camelCase JSON. Input models are
strict: unknown keys are rejected, required keys enforced, enums restricted and nothing
is coerced ("3" is not an integer).
"""


from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ticket_triage.config import (
    AgentEventType,
    MessageChannel,
    MessageDirection,
    TenantEmotion,
    TicketCategory,
    TicketPriority,
)

if TYPE_CHECKING:
    from ticket_triage.orchestrator.models import RunParams


logger = logging.getLogger(__name__)

POSTAL_CODE_PATTERN = r"[A-Za-z]\d[A-Za-z]\s?\d[A-Za-z]\d"


class _ToolModel(BaseModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _ToolInput(_ToolModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ToolError(BaseModel):

    error: str


# -------- categorize_and_triage ------------------------------------------------


class CategorizeAndTriageInput(_ToolInput):

    ticket_id: Any = None       # Ignored: always replaced with the run's ticket id
    subject: str = Field(min_length=1)
    latest_message_text: str = Field(min_length=1)
    direction: MessageDirection
    channel: MessageChannel
    hinted_category: Optional[TicketCategory] = None
    tenant_emotion: Optional[TenantEmotion] = None


class ChecklistItem(_ToolModel):

    label: str = Field(min_length=2)
    completed: bool = False
    action: str = Field(min_length=2)


class CategorizeAndTriageResult(_ToolModel):

    category: TicketCategory
    priority: TicketPriority
    requires_human_review: bool = False
    summary: str = Field(min_length=5)
    checklist: List[ChecklistItem] = Field(default_factory=list, max_length=8)
    suggested_assignee_id: Optional[str] = None
    tenant_user_id: Optional[str] = None


# -------- search_contractors ---------------------------------------------------


class ContractorLocation(_ToolInput):

    postal_code: str = Field(pattern=POSTAL_CODE_PATTERN)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class SearchContractorsInput(_ToolInput):

    ticket_id: Any = None
    category: TicketCategory
    location: Optional[ContractorLocation] = None
    specialty: Optional[str] = Field(default=None, max_length=120)
    limit: Optional[int] = Field(default=None, ge=1, le=10)


class ContractorMatch(_ToolModel):

    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    review_count: Optional[int] = Field(default=None, ge=0)
    distance_km: Optional[float] = Field(default=None, gt=0)
    source: Literal["internal", "external"]


class SearchContractorsResult(_ToolModel):

    contractors: List[ContractorMatch] = Field(default_factory=list, max_length=5)


# -------- Run-context merging --------------------------------------------------


def _resolve_triage_input(data: CategorizeAndTriageInput, params: "RunParams") -> CategorizeAndTriageInput:
    """The engine never gets to choose which ticket it is triaging."""

    return data.model_copy(update={"ticket_id": params.ticket_id})

def _accept_default(data: SearchContractorsInput, field: str, value: Any) -> bool:
    """A run-level default is only merged in if the input still validates with it."""

    try:
        SearchContractorsInput.model_validate({**data.model_dump(), field: value})
    except ValidationError as exc:
        logger.warning("Ignoring invalid default %s for contractor search: %s", field, describe_validation_error(exc))
        return False

    return True

def _resolve_contractor_input(data: SearchContractorsInput, params: "RunParams") -> SearchContractorsInput:
    """Inject the ticket id and fill location/specialty/limit from the run's search context."""

    merged = data.model_dump()
    merged["ticket_id"] = params.ticket_id
    ctx = params.contractor_search_context

    if ctx is not None:
        defaults: Dict[str, Any] = {}

        if data.location is None and ctx.location and ctx.location.postal_code:
            defaults["location"] = {
                "postal_code": ctx.location.postal_code,
                "latitude": ctx.location.latitude,
                "longitude": ctx.location.longitude,
            }
        if not data.specialty and ctx.specialty:
            defaults["specialty"] = ctx.specialty
        if data.limit is None and ctx.limit is not None:
            defaults["limit"] = ctx.limit

        for field, value in defaults.items():
            if _accept_default(data, field, value):
                merged[field] = value

    return SearchContractorsInput.model_validate(merged)


# -------- Registry -------------------------------------------------------------


@dataclass(frozen=True)
class ToolDefinition:

    name: str
    description: str
    input_model: Type[BaseModel]
    result_model: Type[BaseModel]
    event_type: AgentEventType
    resolve_input: Callable[[Any, "RunParams"], BaseModel]
    required: bool = False


CATEGORIZE_AND_TRIAGE = ToolDefinition(
    name="categorize_and_triage",
    description="Analyze inbound conversation and categorize priority, summary, and next steps.",
    input_model=CategorizeAndTriageInput,
    result_model=CategorizeAndTriageResult,
    event_type=AgentEventType.TRIAGE_COMPLETED,
    resolve_input=_resolve_triage_input,
    required=True,
)

SEARCH_CONTRACTORS = ToolDefinition(
    name="search_contractors",
    description="Search internal/external contractor directories, returning top matches.",
    input_model=SearchContractorsInput,
    result_model=SearchContractorsResult,
    event_type=AgentEventType.TOOL_EXECUTED,
    resolve_input=_resolve_contractor_input,
)

# Order here is the order tools are advertised to the engine
TOOLS: Tuple[ToolDefinition, ...] = (CATEGORIZE_AND_TRIAGE, SEARCH_CONTRACTORS)
TOOL_NAMES: Tuple[str, ...] = tuple(t.name for t in TOOLS)


def get_tool_definition(name: str) -> Optional[ToolDefinition]:

    return next((t for t in TOOLS if t.name == name), None)

def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into 'field.path: message; ...'."""

    parts = []

    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")

    return "; ".join(parts)

def validate_arguments(definition: ToolDefinition, raw: Any) -> Tuple[Optional[BaseModel], Optional[str]]:
    """
    Validate decoded engine arguments against the tool's input model.

    Validation runs in strict JSON mode so enum values are accepted as strings but no
    other coercion happens. Returns (model, None) on success and (None, detail) otherwise.
    """

    try:
        return definition.input_model.model_validate_json(json.dumps(raw), strict=True), None
    except ValidationError as exc:
        return None, describe_validation_error(exc)

def validate_result(definition: ToolDefinition, result: Any) -> BaseModel:
    """Coerce a handler's return value into the tool's result model (raises ValidationError)."""

    if isinstance(result, definition.result_model):
        return result

    if isinstance(result, BaseModel):
        result = result.model_dump(by_alias=True)

    return definition.result_model.model_validate(result)
