"""
src/ticket_triage/context/loader.py

Internal contractor directory, seeded from a JSON file:

    {"contractors": [{"id": "c1", "company_name": "Fundy Plumbing", "trade": "PLUMBING",
                      "service_categories": ["MAINTENANCE"], "phone": "...", "email": "..."}]}
"""


import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ticket_triage import config


class Directory:

    def __init__(self, data: Dict[str, Any]):

        self.contractors = data.get("contractors", [])


def load_directory(path: Optional[Union[str, Path]] = None) -> Directory:
    """Load the directory from `path` (or CONTRACTOR_DIRECTORY_PATH). No path means an empty directory."""

    path = path or config.contractor_directory_path()

    if not path:
        return Directory({})

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Contractor directory not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    # Sanity checks
    if "contractors" not in data:
        raise ValueError("contractor directory missing 'contractors'")

    for idx, entry in enumerate(data["contractors"]):
        for key in ("id", "company_name"):
            if not entry.get(key):
                raise ValueError(f"contractor #{idx} missing '{key}'")

    return Directory(data)
