"""
src/ticket_triage/context/selectors.py
"""


from typing import Dict, List, Optional, Tuple

from rapidfuzz import fuzz, process, utils

from ticket_triage.config import CATEGORY_TRADES
from .loader import Directory


def contractors_for_category(directory: Directory, category: str) -> List[Dict]:
    """Contractors that list the ticket category, or whose trade is the category's default trade."""

    trade = CATEGORY_TRADES.get(category)
    out = []

    for c in directory.contractors:
        if category in c.get("service_categories", []) or (trade and c.get("trade") == trade):
            out.append(c)

    return out

def _search_text(contractor: Dict) -> str:

    parts = [contractor.get("company_name", ""), contractor.get("trade", "")]
    parts.extend(contractor.get("specialties", []))

    return " ".join(p for p in parts if p)

def rank_contractors(
        candidates: List[Dict],
        term: Optional[str],
        limit: int,
        score_cutoff: int = 60,
) -> List[Tuple[Dict, int]]:
    """Return [(contractor, score), ...] best first. Without a term, keep directory order."""

    if not candidates:
        return []

    if not term:
        return [(c, 100) for c in candidates[:limit]]

    choices = [_search_text(c) for c in candidates]
    matches = process.extract(
        term, choices, scorer=fuzz.WRatio, processor=utils.default_process,
        limit=limit, score_cutoff=score_cutoff,
    )

    # matches: [(text, score, index)]
    return [(candidates[idx], int(score)) for _text, score, idx in matches]
