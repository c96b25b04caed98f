"""Tests for the Google Places text-search client (httpx mock transport, no network)."""

import httpx
import pytest

from ticket_triage.tools.places import PlacesClient, build_query


PLACES_OK = {
    "status": "OK",
    "results": [
        {
            "place_id": "abc", "name": "Saint John Roofing", "rating": 4.6, "user_ratings_total": 31,
            "formatted_address": "12 King St, Saint John, NB", "types": ["roofing_contractor"],
        },
        {"place_id": "def", "name": "Bay Roof Repair"},
        {"place_id": "ghi", "name": "Third Roofing"},
    ],
}


def _client(handler, api_key="test-key"):
    return PlacesClient(api_key, transport=httpx.MockTransport(handler))


class TestBuildQuery:

    def test_term_over_category(self):
        assert build_query("roofing", "MAINTENANCE", "E2L 4L1, Canada") == "roofing E2L 4L1, Canada"

    def test_category_then_fallback(self):
        assert build_query(None, "MAINTENANCE", "Moncton") == "MAINTENANCE Moncton"
        assert build_query(None, None, "Moncton") == "contractor Moncton"


class TestPlacesClient:

    @pytest.mark.asyncio
    async def test_maps_results_up_to_limit(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=PLACES_OK)

        results = await _client(handler).search(location="E2L 4L1, Canada", category="MAINTENANCE", term="roofing", limit=2)

        assert [r.id for r in results] == ["abc", "def"]
        assert results[0].review_count == 31
        assert results[0].metadata == {"category": "MAINTENANCE", "types": ["roofing_contractor"]}
        assert results[1].rating is None

        params = seen[0].url.params
        assert params["query"] == "roofing E2L 4L1, Canada"
        assert params["region"] == "ca"
        assert params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_no_api_key_skips_request(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_PLACES_API_KEY", raising=False)

        def handler(request):
            raise AssertionError("no request expected")

        client = PlacesClient(transport=httpx.MockTransport(handler))

        assert await client.search(location="Moncton") == []

    @pytest.mark.asyncio
    async def test_zero_results(self):
        client = _client(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))

        assert await client.search(location="Moncton") == []

    @pytest.mark.asyncio
    async def test_non_ok_status(self, caplog):
        client = _client(lambda request: httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"}))

        assert await client.search(location="Moncton") == []
        assert "REQUEST_DENIED" in caplog.text

    @pytest.mark.asyncio
    async def test_http_error_status(self, caplog):
        client = _client(lambda request: httpx.Response(503, text="unavailable"))

        assert await client.search(location="Moncton") == []
        assert "Places API error: 503 - unavailable" in caplog.text
        assert caplog.records[-1].args == (503, "unavailable")

    @pytest.mark.asyncio
    async def test_transport_failure(self, caplog):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await _client(handler).search(location="Moncton") == []
        assert "Places API request failed: connection refused" in caplog.text
