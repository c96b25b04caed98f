"""
src/ticket_triage/orchestrator/events.py

Best-effort audit trail for tool executions.

EventLogger.log() never awaits the write: each event is handed to the sink in a
detached task, and anything the sink raises is logged and dropped. The orchestrator's
control flow cannot observe a failed write.
"""


import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional, Set, Union

from ticket_triage.config import AgentEventType
from ticket_triage.orchestrator.models import AgentEvent, ToolExecutionRecord


logger = logging.getLogger(__name__)

EventSink = Callable[[AgentEvent], Awaitable[None]]


async def logging_sink(event: AgentEvent) -> None:
    """Default sink: one INFO line per event."""

    logger.info("agent_event %s", event.model_dump_json())


class JsonlEventSink:
    """Append events as JSON lines to a file (one object per line)."""

    def __init__(self, path: Union[str, Path]):

        self.path = Path(path)

    def _append(self, line: str) -> None:

        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def __call__(self, event: AgentEvent) -> None:

        await asyncio.to_thread(self._append, json.dumps(event.model_dump(mode="json"), ensure_ascii=False))


class EventLogger:

    def __init__(self, sink: Optional[EventSink] = None):

        self.sink: EventSink = sink or logging_sink
        self._pending: Set[asyncio.Task] = set()

    def log(self, ticket_id: str, event_type: AgentEventType, record: ToolExecutionRecord) -> None:
        """Schedule the write and return immediately. Must be called from a running event loop."""

        event = AgentEvent(
            ticket_id=ticket_id,
            type=event_type,
            payload=record.output_payload(),
            note=f"Tool {record.tool} executed",
            created_at=datetime.now(timezone.utc),
        )
        task = asyncio.get_running_loop().create_task(self._write(event, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, event: AgentEvent, record: ToolExecutionRecord) -> None:

        try:
            await self.sink(event)
        except Exception:
            logger.exception("Failed to log agent event (ticket=%s, tool=%s)", event.ticket_id, record.tool)

    @property
    def pending(self) -> int:

        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled write. For shutdown and tests."""

        while self._pending:
            await asyncio.gather(*list(self._pending))
