"""Tests for the property API router."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from landguard.api.app import create_app
from landguard.api.property import get_property_service
from landguard.errors import ConflictError
from landguard.services.property_check import PropertyService
from landguard.store.kv import MemoryKeyValueStore
from landguard.store.property_store import PropertyStore

CLIENT_HEADERS = {"X-API-KEY": "dev-client-token"}
ADMIN_HEADERS = {"X-API-KEY": "dev-admin-token"}
ADDRESS = {"address": "742 Evergreen Terrace", "city": "Springfield", "state": "OR"}


@pytest.fixture()
def service() -> PropertyService:
    return PropertyService(PropertyStore(MemoryKeyValueStore()))


@pytest.fixture()
def client(service: PropertyService) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_property_service] = lambda: service
    return TestClient(app)


def _check(client: TestClient, **overrides) -> dict:
    response = client.post("/property/check", json={**ADDRESS, **overrides}, headers=CLIENT_HEADERS)
    assert response.status_code == 200
    return response.json()["data"]


def test_check_creates_property_once(client: TestClient) -> None:
    """Repeated checks of the same address resolve to one record."""

    first = _check(client)
    second = _check(client, address="742 EVERGREEN terrace ")

    assert first["property"]["id"] == second["property"]["id"]
    assert first["property"]["riskLevel"] == "safe"
    assert second["listings"] == []
    assert second["alerts"] == []
    assert second["history"]["totalListings"] == 0


def test_check_requires_address_fields(client: TestClient) -> None:
    response = client.post("/property/check", json={"address": "1 Elm"}, headers=CLIENT_HEADERS)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_FIELD"


def test_report_flags_property_and_raises_alert(client: TestClient) -> None:
    response = client.post(
        "/property/report",
        json={
            "address": "742 Evergreen Terrace, Springfield, OR",
            "scamType": "wire_fraud",
            "description": "Landlord abroad asked for a wire",
        },
        headers=CLIENT_HEADERS,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["reportId"] == data["report"]["id"]
    assert data["report"]["severity"] == "critical"
    assert data["report"]["reportedBy"] == "client_1"
    assert data["alert"]["alertType"] == "danger"

    checked = _check(client)
    assert checked["property"]["status"] == "flagged"
    assert checked["property"]["totalFlags"] == 1
    assert [alert["id"] for alert in checked["alerts"]] == [data["alert"]["id"]]
    assert checked["alerts"][0]["scanCount"] == 1


def test_report_validation(client: TestClient) -> None:
    missing = client.post("/property/report", json={"propertyId": "prop_x"}, headers=CLIENT_HEADERS)
    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "MISSING_FIELD"

    unknown = client.post(
        "/property/report",
        json={"propertyId": "prop_x", "scamType": "wire_fraud", "description": "x"},
        headers=CLIENT_HEADERS,
    )
    assert unknown.status_code == 404
    assert unknown.json()["error"]["code"] == "NOT_FOUND"


def test_verify_requires_admin(client: TestClient) -> None:
    prop_id = _check(client)["property"]["id"]
    report = client.post(
        "/property/report",
        json={"propertyId": prop_id, "scamType": "fake_listing", "description": "Not for sale"},
        headers=CLIENT_HEADERS,
    ).json()["data"]

    forbidden = client.post(f"/property/reports/{report['reportId']}/verify", headers=CLIENT_HEADERS)
    assert forbidden.status_code == 403

    verified = client.post(f"/property/reports/{report['reportId']}/verify", headers=ADMIN_HEADERS)
    assert verified.status_code == 200
    assert verified.json()["data"]["verified"] is True
    assert verified.json()["data"]["verifiedBy"] == "admin"

    checked = _check(client)
    assert checked["property"]["verifiedScam"] is True
    assert checked["property"]["status"] == "verified_scam"


def test_listings_feed_history(client: TestClient) -> None:
    prop_id = _check(client)["property"]["id"]
    for platform, url, price in (
        ("zillow", "https://zillow.com/h/1", 250000),
        ("craigslist", "https://craigslist.org/h/1", 150000),
        ("facebook", "https://facebook.com/m/1", 180000),
    ):
        response = client.post(
            f"/property/{prop_id}/listings",
            json={"platform": platform, "listingUrl": url, "price": price, "sellerPhone": "+1-555-123-4567"},
            headers=CLIENT_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["data"]["propertyId"] == prop_id

    checked = _check(client)
    assert checked["property"]["riskScore"] == 35
    assert checked["property"]["riskLevel"] == "medium"
    assert checked["history"]["totalListings"] == 3
    assert checked["history"]["priceRange"] == {"min": 150000, "max": 250000}
    assert checked["history"]["uniqueSellers"] == 1

    bad = client.post(f"/property/{prop_id}/listings", json={"platform": "zillow"}, headers=CLIENT_HEADERS)
    assert bad.status_code == 400


def test_alert_votes_and_deactivation(client: TestClient) -> None:
    prop_id = _check(client)["property"]["id"]
    created = client.post(
        f"/property/{prop_id}/alerts",
        json={"title": "Fake agent", "message": "Agent asks for crypto"},
        headers=CLIENT_HEADERS,
    )
    assert created.status_code == 200
    alert_id = created.json()["data"]["id"]

    client.post(f"/property/alerts/{alert_id}/vote", json={"direction": "up"}, headers=CLIENT_HEADERS)
    voted = client.post(f"/property/alerts/{alert_id}/vote", json={"direction": "down"}, headers=CLIENT_HEADERS)
    assert voted.json()["data"]["upvotes"] == 1
    assert voted.json()["data"]["downvotes"] == 1

    no_direction = client.post(f"/property/alerts/{alert_id}/vote", json={}, headers=CLIENT_HEADERS)
    assert no_direction.status_code == 400

    deactivated = client.post(f"/property/alerts/{alert_id}/deactivate", headers=CLIENT_HEADERS)
    assert deactivated.json()["data"]["isActive"] is False
    assert _check(client)["alerts"] == []

    missing = client.post("/property/alerts/alert_missing/vote", json={"direction": "up"}, headers=CLIENT_HEADERS)
    assert missing.status_code == 404


def test_watchlist_round_trip(client: TestClient) -> None:
    prop_id = _check(client)["property"]["id"]

    for _ in range(2):
        response = client.post("/property/watch", json={"propertyId": prop_id}, headers=CLIENT_HEADERS)
        assert response.status_code == 200

    listed = client.get("/property/watch", headers=CLIENT_HEADERS).json()["data"]
    assert listed["count"] == 1
    assert listed["watches"][0]["propertyId"] == prop_id
    assert listed["watches"][0]["userId"] == "client_1"

    admin_view = client.get("/property/watch", headers=ADMIN_HEADERS).json()["data"]
    assert admin_view["count"] == 0

    removed = client.delete(f"/property/watch/{prop_id}", headers=CLIENT_HEADERS)
    assert removed.json()["data"] == {"propertyId": prop_id, "watching": False}
    assert client.delete(f"/property/watch/{prop_id}", headers=CLIENT_HEADERS).status_code == 404

    unknown = client.post("/property/watch", json={"propertyId": "prop_missing"}, headers=CLIENT_HEADERS)
    assert unknown.status_code == 404


def test_stats(client: TestClient) -> None:
    prop_id = _check(client)["property"]["id"]
    client.post(
        "/property/report",
        json={"propertyId": prop_id, "scamType": "rental_scam", "description": "Fake rental"},
        headers=CLIENT_HEADERS,
    )

    data = client.get("/property/stats", headers=CLIENT_HEADERS).json()["data"]
    assert data["totalProperties"] == 1
    assert data["flaggedProperties"] == 1
    assert data["totalReports"] == 1
    assert data["activeAlerts"] == 1
    assert data["scamsByType"]["rental_scam"] == 1


def test_lost_update_returns_conflict_envelope(client: TestClient, service: PropertyService, monkeypatch) -> None:
    prop_id = _check(client)["property"]["id"]
    report_id = client.post(
        "/property/report",
        json={"propertyId": prop_id, "scamType": "fake_listing", "description": "Not for sale"},
        headers=CLIENT_HEADERS,
    ).json()["data"]["reportId"]

    def stale_verify(report_id, *, verified_by):
        raise ConflictError(f"Stale write for 'property:{prop_id}': expected version 2")

    monkeypatch.setattr(service, "verify_report", stale_verify)

    response = client.post(f"/property/reports/{report_id}/verify", headers=ADMIN_HEADERS)
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "CONFLICT"


def test_unexpected_error_is_opaque(service: PropertyService, monkeypatch) -> None:
    """Unhandled failures become a generic 500 without leaking their details."""

    app = create_app()
    app.dependency_overrides[get_property_service] = lambda: service
    client = TestClient(app, raise_server_exceptions=False)

    def broken_stats():
        raise RuntimeError("db password=hunter2 rejected")

    monkeypatch.setattr(service, "stats", broken_stats)

    response = client.get("/property/stats", headers=CLIENT_HEADERS)
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
    }
    assert "hunter2" not in response.text
