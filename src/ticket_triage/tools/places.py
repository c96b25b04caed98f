"""
src/ticket_triage/tools/places.py - external contractor lookup (Google Places text search)

External search is a nice-to-have: a missing API key, an HTTP failure or a non-OK
Places status all return an empty list (with a log line) instead of raising, so the
contractor search handler can still answer from the internal directory.
"""


import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from ticket_triage import config


logger = logging.getLogger(__name__)


class ExternalContractor(BaseModel):

    id: str
    name: str
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    address: Optional[str] = None
    source: str = "google"
    metadata: Dict[str, Any] = Field(default_factory=dict)


def build_query(term: Optional[str], category: Optional[str], location: str) -> str:

    return " ".join(p for p in (term or category or "contractor", location) if p)


class PlacesClient:

    def __init__(
            self,
            api_key: Optional[str] = None,
            *,
            endpoint: str = config.GOOGLE_PLACES_ENDPOINT,
            transport: Optional[httpx.AsyncBaseTransport] = None,
            timeout: float = config.PLACES_TIMEOUT_SECONDS,
    ):

        self.api_key = api_key if api_key is not None else config.places_api_key()
        self.endpoint = endpoint
        self.transport = transport
        self.timeout = timeout

    async def search(
            self,
            *,
            location: str,
            category: Optional[str] = None,
            term: Optional[str] = None,
            limit: int = 5,
    ) -> List[ExternalContractor]:
        """Text search for `term` (or the category) near `location`, at most `limit` results."""

        if not self.api_key:
            logger.warning("GOOGLE_PLACES_API_KEY missing; skipping external contractor search.")
            return []

        params = {"query": build_query(term, category, location), "region": "ca", "key": self.api_key}

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(self.endpoint, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Places API error: %s - %s", e.response.status_code, e.response.text[:300])
            return []
        except httpx.HTTPError as e:
            logger.error("Places API request failed: %s", e)
            return []

        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status and status != "OK":
            logger.error("Places API responded with %s: %s", status, data.get("error_message"))
            return []

        out = []
        for place in (data.get("results") or [])[:limit]:
            out.append(ExternalContractor(
                id=place["place_id"],
                name=place["name"],
                phone=place.get("formatted_phone_number"),
                website=place.get("website"),
                rating=place.get("rating"),
                review_count=place.get("user_ratings_total"),
                address=place.get("formatted_address"),
                metadata={"category": category, "types": place.get("types", [])},
            ))

        return out
