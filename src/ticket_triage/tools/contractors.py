"""
src/ticket_triage/tools/contractors.py - default search_contractors handler

Provides:
- ContractorSearch: callable handler, internal directory first, external Places results
  fill whatever is left of the limit

Design notes:
* Limit: the engine's limit (or the run's default, merged in by the orchestrator), else
  DEFAULT_CONTRACTOR_LIMIT. Never more than MAX_CONTRACTOR_RESULTS.
* Internal matches: contractors serving the ticket category, ranked by fuzzy match on
  the specialty (see context.selectors).
* External ids are prefixed with "external:" so they cannot collide with directory ids.
* A directory row that does not fit ContractorMatch (bad email, rating above 5) is
  skipped with a warning; the slot goes to the next match or to external results.
"""


import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from ticket_triage.config import DEFAULT_CONTRACTOR_LIMIT, DEFAULT_EXTERNAL_LOCATION, MAX_CONTRACTOR_RESULTS
from ticket_triage.context import selectors
from ticket_triage.context.loader import Directory
from ticket_triage.orchestrator.registry import ContractorMatch, SearchContractorsInput, SearchContractorsResult
from ticket_triage.tools.places import ExternalContractor, PlacesClient


logger = logging.getLogger(__name__)


def normalise_internal(contractor: Dict) -> ContractorMatch:

    return ContractorMatch(
        id=str(contractor["id"]),
        name=contractor["company_name"],
        phone=contractor.get("phone") or None,
        email=contractor.get("email") or None,
        rating=contractor.get("rating"),
        review_count=contractor.get("review_count"),
        source="internal",
    )

def normalise_external(contractor: ExternalContractor) -> ContractorMatch:

    return ContractorMatch(
        id=f"external:{contractor.id}",
        name=contractor.name,
        phone=contractor.phone,
        rating=contractor.rating,
        review_count=contractor.review_count,
        source="external",
    )


class ContractorSearch:

    def __init__(self, directory: Optional[Directory] = None, places: Optional[PlacesClient] = None):

        self.directory = directory or Directory({})
        self.places = places or PlacesClient()

    async def __call__(self, data: SearchContractorsInput) -> SearchContractorsResult:
        """
        Search both directories for contractors matching the ticket category.

        Args:
            data: Validated tool input, already merged with the run's search defaults.

        Returns:
            SearchContractorsResult with internal matches first.
        """

        limit = min(data.limit or DEFAULT_CONTRACTOR_LIMIT, MAX_CONTRACTOR_RESULTS)
        category = data.category.value

        candidates = selectors.contractors_for_category(self.directory, category)
        ranked = selectors.rank_contractors(candidates, data.specialty, len(candidates))
        matches: List[ContractorMatch] = []
        for contractor, _score in ranked:
            if len(matches) >= limit:
                break
            try:
                matches.append(normalise_internal(contractor))
            except ValidationError as exc:
                logger.warning("Skipping directory contractor %s: %s", contractor.get("id"), exc.errors()[0].get("msg"))

        remaining = max(limit - len(matches), 0)
        if remaining > 0:
            location = f"{data.location.postal_code}, Canada" if data.location else DEFAULT_EXTERNAL_LOCATION
            external = await self.places.search(
                location=location,
                category=category,
                term=data.specialty,
                limit=remaining,
            )
            matches.extend(normalise_external(e) for e in external)

        return SearchContractorsResult(contractors=matches[:limit])
