"""
src/ticket_triage/tools/triage.py - default categorize_and_triage handler

The orchestrator accepts any categorize_and_triage handler. This one needs no network
and is what the demo runner wires in.

Key ideas:

1) Category by keywords
   Each category has a short keyword list. Keywords match at a word start, so "leak"
   matches "leaking" but "heat" does not match "theatre". The category with the most
   hits wins; ties go to the earlier category in CATEGORY_KEYWORDS. A hinted category
   from the engine always wins.

2) Priority
   Emergency keywords (see tools.urgency) make a ticket URGENT. An upset tenant
   (FRUSTRATED, URGENT or PANICKED) bumps it to HIGH. Maintenance defaults to MEDIUM,
   everything else to LOW.

3) Checklist
   Standard next steps per category, with a safety step in front for emergencies.
"""


import re
from typing import Dict, List, Tuple

from ticket_triage.config import TenantEmotion, TicketCategory, TicketPriority
from ticket_triage.orchestrator.registry import (
    CategorizeAndTriageInput,
    CategorizeAndTriageResult,
    ChecklistItem,
)
from ticket_triage.tools.urgency import detect_urgency


CATEGORY_KEYWORDS: Dict[TicketCategory, List[str]] = {
    TicketCategory.MAINTENANCE: [
        "leak", "faucet", "sink", "toilet", "drain", "pipe", "water", "heat", "furnace",
        "plumb", "electric", "outlet", "mould", "mold", "broken", "repair", "appliance",
        "fridge", "stove", "roof", "window", "pest", "mice", "flood", "fire",
    ],
    TicketCategory.BILLING: [
        "rent", "payment", "invoice", "deposit", "refund", "charge", "fee", "receipt", "balance",
    ],
    TicketCategory.OPERATIONS: [
        "lease", "renewal", "move-in", "move in", "move-out", "move out", "inspection", "parking", "keys",
    ],
    TicketCategory.COMMUNICATION: [
        "complaint", "noise", "neighbour", "neighbor", "question", "update", "contact",
    ],
}

CHECKLISTS: Dict[TicketCategory, List[Tuple[str, str]]] = {
    TicketCategory.MAINTENANCE: [
        ("Confirm details", "Ask the tenant for photos and the exact location of the issue"),
        ("Schedule repair", "Book a contractor visit that suits the tenant"),
        ("Follow up", "Confirm with the tenant that the repair is complete"),
    ],
    TicketCategory.BILLING: [
        ("Review ledger", "Check the tenant's payment history"),
        ("Reply", "Send the tenant a breakdown of the charges"),
    ],
    TicketCategory.OPERATIONS: [
        ("Check lease", "Review the lease terms that apply"),
        ("Schedule", "Arrange the visit or paperwork that is needed"),
    ],
    TicketCategory.COMMUNICATION: [
        ("Acknowledge", "Reply to the tenant acknowledging the message"),
        ("Route", "Forward the message to the responsible team member"),
    ],
    TicketCategory.OTHER: [
        ("Review", "Read the message and decide who owns it"),
    ],
}

SAFETY_STEP = ("Safety check", "Tell the tenant to call emergency services if anyone is at risk")

UPSET_EMOTIONS = {TenantEmotion.FRUSTRATED, TenantEmotion.URGENT, TenantEmotion.PANICKED}


# --- Helpers -------------------------------------------------------------------
def _keyword_hits(text: str, keywords: List[str]) -> int:

    return sum(1 for k in keywords if re.search(rf"\b{re.escape(k)}", text))

def classify_category(text: str) -> TicketCategory:
    """Best keyword match over CATEGORY_KEYWORDS; OTHER when nothing matches."""

    lower = text.lower()
    best, best_hits = TicketCategory.OTHER, 0

    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = _keyword_hits(lower, keywords)
        if hits > best_hits:
            best, best_hits = category, hits

    return best

def _priority(category: TicketCategory, urgent: bool, emotion) -> TicketPriority:

    if urgent:
        return TicketPriority.URGENT
    if emotion in UPSET_EMOTIONS:
        return TicketPriority.HIGH
    if category == TicketCategory.MAINTENANCE:
        return TicketPriority.MEDIUM

    return TicketPriority.LOW


# --- Public API ----------------------------------------------------------------
async def categorize_and_triage(data: CategorizeAndTriageInput) -> CategorizeAndTriageResult:
    """
    Classify the latest message into category, priority, summary and checklist.

    Args:
        data: Validated tool input (ticket id already injected by the orchestrator).

    Returns:
        CategorizeAndTriageResult. Human review is requested for emergencies and
        panicked tenants.
    """

    text = f"{data.subject}\n{data.latest_message_text}"
    category = data.hinted_category or classify_category(text)
    urgency = detect_urgency(text)
    priority = _priority(category, urgency.is_urgent, data.tenant_emotion)

    steps = list(CHECKLISTS[category])
    if urgency.is_urgent:
        steps.insert(0, SAFETY_STEP)

    prefix = "Urgent " if urgency.is_urgent else ""
    summary = f"{prefix}{category.value} request".capitalize() + f": {data.subject.strip()}"

    return CategorizeAndTriageResult(
        category=category,
        priority=priority,
        requires_human_review=urgency.is_urgent or data.tenant_emotion == TenantEmotion.PANICKED,
        summary=summary,
        checklist=[ChecklistItem(label=label, action=action) for label, action in steps[:8]],
    )
