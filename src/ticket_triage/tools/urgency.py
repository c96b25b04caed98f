"""
src/ticket_triage/tools/urgency.py - keyword-based emergency detection

Usage:
    from ticket_triage.tools.urgency import detect_urgency
    flag = detect_urgency("There is water everywhere in the basement")
    flag.is_urgent  # True
"""


from dataclasses import dataclass, field
from typing import List


URGENT_KEYWORDS = [
    "fire",
    "flood",
    "gas leak",
    "carbon monoxide",
    "no heat",
    "burst pipe",
    "water everywhere",
    "security",
    "break-in",
    "emergency",
    "smell gas",
]


@dataclass
class UrgencyFlag:

    is_urgent: bool
    matched: List[str] = field(default_factory=list)


def detect_urgency(text: str) -> UrgencyFlag:
    """Case-insensitive substring match against URGENT_KEYWORDS."""

    lower = (text or "").lower()
    matched = [k for k in URGENT_KEYWORDS if k in lower]

    return UrgencyFlag(is_urgent=bool(matched), matched=matched)
