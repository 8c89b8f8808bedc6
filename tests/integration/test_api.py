"""Integration tests for the matching API."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from swapgraph.api.endpoints import get_engine
from swapgraph.api.main import MAX_REQUEST_SIZE, app
from swapgraph.engine import MatchingEngine
from swapgraph.matching.config import MatchingConfig
from tests.helpers import NOW_ISO, make_ring, prices_for


def ring_payload(ids=("A", "B", "C"), **fields):
    intents = make_ring(list(ids))
    payload = {
        "intents": [intent.model_dump(mode="json") for intent in intents],
        "assetValuesUsd": prices_for(intents),
        "nowIso": NOW_ISO,
    }
    payload.update(fields)
    return payload


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Create a test client for the API."""
    # Ensure dependency overrides are cleared after test
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client_with_long_cycles() -> Iterator[TestClient]:
    """Create a test client whose engine allows 4-party cycles by default."""
    engine = MatchingEngine(MatchingConfig(max_cycle_length=4))
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health_check(self, client):
        """Health endpoint returns ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestMatchingRunsEndpoint:
    """Tests for POST /matching/runs."""

    def test_three_way_ring(self, client):
        response = client.post("/matching/runs", json=ring_payload())
        assert response.status_code == 200

        data = response.json()
        assert len(data["proposals"]) == 1
        proposal = data["proposals"][0]
        assert [p["intent_id"] for p in proposal["participants"]] == ["A", "B", "C"]
        assert proposal["confidence_score"] == 0.8
        assert [line["fee_usd"] for line in proposal["fee_breakdown"]] == [1.0, 1.0, 1.0]
        assert data["trace"][0]["reason"] == "picked"
        assert data["stats"]["selected_proposals"] == 1

    def test_diagnostics_omitted_unless_requested(self, client):
        data = client.post("/matching/runs", json=ring_payload()).json()
        assert "cycle_enumeration_limited" not in data["stats"]

        data = client.post(
            "/matching/runs", json=ring_payload(includeCycleDiagnostics=True)
        ).json()
        assert data["stats"]["cycle_enumeration_limited"] is False
        assert data["stats"]["cycle_enumeration_timed_out"] is False

    def test_empty_request(self, client):
        response = client.post("/matching/runs", json={"intents": []})
        assert response.status_code == 200
        assert response.json()["proposals"] == []

    def test_injected_engine(self, client_with_long_cycles):
        """The engine dependency supplies per-deployment defaults."""
        response = client_with_long_cycles.post(
            "/matching/runs", json=ring_payload(("P", "Q", "R", "S"))
        )
        assert response.status_code == 200
        assert len(response.json()["proposals"]) == 1

    def test_missing_asset_value_returns_422(self, client):
        payload = ring_payload()
        payload["assetValuesUsd"] = {"A_item": 100.0, "B_item": 100.0}

        response = client.post("/matching/runs", json=payload)

        assert response.status_code == 422
        data = response.json()
        assert data["asset_id"] == "C_item"
        assert data["detail"] == "Missing asset value for asset_id=C_item"

    def test_invalid_schema_returns_422(self, client):
        payload = ring_payload()
        payload["intents"][0]["offer"] = []

        response = client.post("/matching/runs", json=payload)

        assert response.status_code == 422

    def test_oversized_request_returns_413(self, client):
        """Request with Content-Length exceeding the limit returns 413."""
        response = client.post(
            "/matching/runs",
            json={"intents": []},
            headers={"Content-Length": str(MAX_REQUEST_SIZE + 1)},
        )
        assert response.status_code == 413
        assert response.json()["detail"] == "Request too large"
