"""
src/ticket_triage/app.py

Local demo runner: triage one ticket described in a JSON file and print the result.

    python -m ticket_triage.app ticket.json --directory contractors.json --events events.jsonl

The ticket file holds RunParams fields, e.g.
    {"ticket_id": "t-1", "subject": "Leaking faucet", "ticket_summary": "...",
     "last_message": {"id": "m-1", "body": "...", "direction": "INBOUND",
                      "channel": "EMAIL", "received_at": "2025-01-01T12:00:00Z"}}
"""


import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ticket_triage import config
from ticket_triage.context.loader import load_directory
from ticket_triage.orchestrator.events import EventLogger, JsonlEventSink
from ticket_triage.orchestrator.models import RunParams, RunResult
from ticket_triage.orchestrator.router import run_agent
from ticket_triage.tools.contractors import ContractorSearch
from ticket_triage.tools.triage import categorize_and_triage


APP_TITLE = "Ticket triage agent (local demo)"


def summarise(result: RunResult) -> Dict[str, Any]:
    """JSON-ready view of a run: final text, triage, contractors and the audit trail."""

    return {
        "output_text": result.response.output_text,
        "usage": result.response.usage.model_dump() if result.response.usage else None,
        "triage": result.triage.model_dump(mode="json", by_alias=True) if result.triage else None,
        "contractors": result.contractors.model_dump(mode="json", by_alias=True) if result.contractors else None,
        "tool_executions": [
            {
                "call_id": r.call_id,
                "tool": r.tool,
                "input": r.input_payload(),
                "output": r.output_payload(),
            }
            for r in result.tool_executions
        ],
    }

async def triage_file(ticket_path: Path, directory_path: Optional[Path], events_path: Optional[Path]) -> Dict[str, Any]:

    with ticket_path.open("r", encoding="utf-8") as f:
        params = RunParams.model_validate(json.load(f))

    handlers = {
        "categorize_and_triage": categorize_and_triage,
        "search_contractors": ContractorSearch(load_directory(directory_path)),
    }
    event_logger = EventLogger(JsonlEventSink(events_path) if events_path else None)

    result = await run_agent(params, handlers, event_logger=event_logger)
    await event_logger.drain()

    return summarise(result)

def main(argv: Optional[List[str]] = None) -> int:

    parser = argparse.ArgumentParser(description=APP_TITLE)
    parser.add_argument("ticket", type=Path, help="JSON file with the run parameters")
    parser.add_argument("--directory", type=Path, default=None, help="Internal contractor directory (JSON)")
    parser.add_argument("--events", type=Path, default=None, help="Append audit events to this JSONL file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    out = asyncio.run(triage_file(args.ticket, args.directory, args.events))
    print(json.dumps(out, indent=2, ensure_ascii=False))

    return 0


if __name__ == "__main__":

    raise SystemExit(main())

# EOF
