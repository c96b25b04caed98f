"""
src/ticket_triage/orchestrator/router.py

Router: advertises the tool specs, runs the bounded tool-calling loop against the
reasoning engine, executes tool calls in order and returns a tidy RunResult.
"""


import inspect
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from ticket_triage.config import (
    MAX_TOOL_ROUNDS,
    MessageChannel,
    MessageDirection,
    TICKET_ID_METADATA_KEY,
    TenantEmotion,
    TicketCategory,
)
from ticket_triage.orchestrator import prompts
from ticket_triage.orchestrator.events import EventLogger
from ticket_triage.orchestrator.llm_openai import OpenAIResponsesEngine, ReasoningEngine, build_reasoning_options
from ticket_triage.orchestrator.models import (
    EngineResponse,
    EngineTurn,
    ReasonerError,
    ResponseHandle,
    RunParams,
    RunResult,
    ToolCall,
    ToolExecutionRecord,
)
from ticket_triage.orchestrator.registry import (
    CATEGORIZE_AND_TRIAGE,
    POSTAL_CODE_PATTERN,
    SEARCH_CONTRACTORS,
    TOOLS,
    ToolError,
    describe_validation_error,
    get_tool_definition,
    validate_arguments,
    validate_result,
)


logger = logging.getLogger(__name__)

ToolHandler = Callable[[BaseModel], Union[Awaitable[Any], Any]]
ToolHandlers = Mapping[str, Optional[ToolHandler]]


# -------- Tool specs advertised to the engine ----------------------------------


def _enum(values) -> Dict[str, Any]:

    return {"type": "string", "enum": [v.value for v in values]}

def _tool_spec(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    """Build a Responses API function spec."""

    return {
        "type": "function",
        "name": name,
        "description": description,
        "strict": False,
        "parameters": {
            "type": "object",
            "properties": parameters.get("properties", {}),
            "required": parameters.get("required", []),
            "additionalProperties": False,
        },
    }

def get_tools_and_specs() -> List[Dict[str, Any]]:
    """
    JSON schemas describing the tools we expose to the engine, in registry order.
    Must mirror the input models in registry.py (tests check they agree).
    """

    return [
        _tool_spec(
            CATEGORIZE_AND_TRIAGE.name,
            CATEGORIZE_AND_TRIAGE.description,
            {
                "properties": {
                    "ticketId": {"type": "string"},
                    "subject": {"type": "string", "minLength": 1},
                    "latestMessageText": {"type": "string", "minLength": 1},
                    "direction": _enum(MessageDirection),
                    "channel": _enum(MessageChannel),
                    "hintedCategory": _enum(TicketCategory),
                    "tenantEmotion": _enum(TenantEmotion),
                },
                "required": ["subject", "latestMessageText", "direction", "channel"]
            }
        ),
        _tool_spec(
            SEARCH_CONTRACTORS.name,
            SEARCH_CONTRACTORS.description,
            {
                "properties": {
                    "ticketId": {"type": "string"},
                    "category": _enum(TicketCategory),
                    "location": {
                        "type": "object",
                        "properties": {
                            "postalCode": {"type": "string", "pattern": POSTAL_CODE_PATTERN},
                            "latitude": {"type": "number", "minimum": -90, "maximum": 90},
                            "longitude": {"type": "number", "minimum": -180, "maximum": 180}
                        },
                        "required": ["postalCode"],
                        "additionalProperties": False
                    },
                    "specialty": {"type": "string", "maxLength": 120},
                    "limit": {"type": "integer", "minimum": 1, "maximum": 10}
                },
                "required": ["category"]
            }
        ),
    ]


# -------- Tool execution bridge ------------------------------------------------


def decode_arguments(raw: Optional[str]) -> Any:
    """Decode the engine's argument string. Malformed JSON degrades to an empty object."""

    if not raw:
        return {}

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Failed to parse tool arguments: %r", raw[:500])
        return {}

def _error_record(call: ToolCall, raw: Any, message: str) -> ToolExecutionRecord:

    return ToolExecutionRecord(call_id=call.call_id, tool=call.name, input=raw, output=ToolError(error=message))

async def _execute_tool(call: ToolCall, handlers: ToolHandlers, params: RunParams) -> ToolExecutionRecord:
    """
    Map one engine tool call to its handler and execute it.

    Unsupported tools, unconfigured optional tools and invalid arguments come back as
    error records for the engine to read. Exceptions raised by the handler itself are
    not caught: they abort the run.
    """

    raw = decode_arguments(call.arguments)
    definition = get_tool_definition(call.name)

    if definition is None:
        return _error_record(call, raw, f'Unsupported tool "{call.name}"')

    handler = handlers.get(definition.name)
    if handler is None:
        return _error_record(call, raw, f"{definition.name} handler is not configured.")

    data, detail = validate_arguments(definition, raw)
    if data is None:
        return _error_record(call, raw, f"Invalid arguments: {detail}")

    resolved = definition.resolve_input(data, params)

    result = handler(resolved)
    if inspect.isawaitable(result):
        result = await result

    try:
        output = validate_result(definition, result)
    except ValidationError as exc:
        raise ReasonerError(
            f"{definition.name} handler returned an invalid result: {describe_validation_error(exc)}"
        ) from exc

    return ToolExecutionRecord(call_id=call.call_id, tool=definition.name, input=resolved, output=output)

def _last_successful_output(executions: List[ToolExecutionRecord], tool: str) -> Optional[BaseModel]:
    """Latest successful output for `tool`; a repeated call wins over an earlier one."""

    for record in reversed(executions):
        if record.tool == tool and record.succeeded:
            return record.output

    return None

def _tool_output_item(record: ToolExecutionRecord) -> Dict[str, Any]:

    return {
        "type": "function_call_output",
        "call_id": record.call_id,
        "output": json.dumps(record.output_payload(), ensure_ascii=False),
    }


# -------- Orchestrate ----------------------------------------------------------


async def run_agent(
        params: RunParams,
        handlers: ToolHandlers,
        *,
        engine: Optional[ReasoningEngine] = None,
        event_logger: Optional[EventLogger] = None,
        max_tool_rounds: int = MAX_TOOL_ROUNDS,
) -> RunResult:
    """
    Entry point: drive the engine through at most `max_tool_rounds` rounds of tool calls.

    Args:
        params: Ticket and message context for this run.
        handlers: Tool name -> handler. categorize_and_triage is mandatory,
            search_contractors is optional.
        engine: Reasoning engine; defaults to the OpenAI Responses client.
        event_logger: Audit sink for successful executions; defaults to logging.
        max_tool_rounds: Upper bound on rounds that execute tools.

    Returns:
        RunResult with the final engine response, the triage/contractor results when
        their tools succeeded, and every execution record in call order.

    Raises:
        ReasonerError if a required handler is missing (before the engine is contacted)
        or a handler returns something that does not fit its result schema.
    """

    for definition in TOOLS:
        if definition.required and not handlers.get(definition.name):
            raise ReasonerError(f"Tool handler {definition.name} is required for run_agent")

    engine = engine or OpenAIResponsesEngine()
    event_logger = event_logger or EventLogger()

    run_id = str(uuid.uuid4())
    options = build_reasoning_options(params.reasoning)
    instructions = prompts.build_system_prompt(params.prompt_context)
    tool_specs = get_tools_and_specs()
    metadata = {TICKET_ID_METADATA_KEY: params.ticket_id}

    def make_turn(input_items: List[Dict[str, Any]], previous: Optional[ResponseHandle]) -> EngineTurn:

        return EngineTurn(
            run_id=run_id,
            instructions=instructions,
            input=input_items,
            tools=tool_specs,
            metadata=metadata,
            previous=previous,
            **options,
        )

    executions: List[ToolExecutionRecord] = []
    logger.info("Starting agent run %s for ticket %s (model=%s)", run_id, params.ticket_id, options["model"])

    response: EngineResponse = await engine.create_turn(make_turn(prompts.build_initial_input(params), None))
    rounds = 0

    while response.tool_calls:
        if rounds >= max_tool_rounds:
            logger.warning(
                "Agent run %s stopped after %d tool rounds with %d tool call(s) still pending",
                run_id, rounds, len(response.tool_calls),
            )
            break
        rounds += 1

        # Execute each tool call in order, then feed every output back in one turn
        outputs = []
        for call in response.tool_calls:
            record = await _execute_tool(call, handlers, params)
            executions.append(record)

            if record.succeeded:
                event_logger.log(params.ticket_id, get_tool_definition(record.tool).event_type, record)

            outputs.append(_tool_output_item(record))

        previous = ResponseHandle(run_id=run_id, token=response.response_id)
        response = await engine.create_turn(make_turn(outputs, previous))

    logger.info("Agent run %s finished after %d tool round(s), %d execution(s)", run_id, rounds, len(executions))

    return RunResult(
        response=response,
        triage=_last_successful_output(executions, CATEGORIZE_AND_TRIAGE.name),
        contractors=_last_successful_output(executions, SEARCH_CONTRACTORS.name),
        tool_executions=executions,
    )
