import json

import pytest

from conftest import FakeProvider
from travelflow import exchange

TRIP = {
    "destination": "Tokyo",
    "startDate": "2026-04-01",
    "days": 3,
    "users": ["Alice", "Bob"],
    "currencyCode": "jpy",
    "currencySymbol": "¥",
    "departureCurrencyCode": "USD",
    "departureCurrencySymbol": "$",
}


@pytest.fixture
def trip_id(client):
    resp = client.post("/api/trips", json=TRIP)
    assert resp.status_code == 201
    return resp.json()["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_new_browser_gets_cookie():
    from fastapi.testclient import TestClient
    from travelflow.main import app

    resp = TestClient(app).get("/api/trips")
    assert "ctk" in resp.cookies


def test_create_and_list_trips(client, trip_id):
    body = client.get("/api/trips").json()

    assert body["currentTripId"] == trip_id
    assert body["syncStatus"] == "online"
    assert body["trips"][0]["destination"] == "Tokyo"
    assert body["trips"][0]["isCurrent"] is True


def test_trips_are_per_browser(client, trip_id):
    client.cookies.set("ctk", "browser-2")
    assert client.get("/api/trips").json()["trips"] == []
    assert client.get(f"/api/trips/{trip_id}").status_code == 404


def test_create_trip_validation(client):
    assert client.post("/api/trips", json={**TRIP, "destination": "  "}).status_code == 400
    assert client.post("/api/trips", json={**TRIP, "days": 0}).status_code == 400
    assert client.post("/api/trips", json={**TRIP, "users": [" ", ""]}).status_code == 400


def test_create_trip_with_placeholder_itinerary(client):
    resp = client.post("/api/trips", json={**TRIP, "generateItinerary": True})

    body = resp.json()
    assert len(body["itinerary"]) == 9
    assert body["itinerary"][0]["location"] == "Tokyo City Center"
    assert body["settings"]["currencyCode"] == "JPY"


def test_create_trip_with_generated_itinerary(client, providers):
    providers.append(FakeProvider("openai", reply=json.dumps({"itinerary": [
        {"dayIndex": 0, "time": "09:00", "location": "Senso-ji", "note": "Early start"},
        {"dayIndex": 1, "time": "18:00", "location": "Tokyo Tower"},
    ]})))

    body = client.post("/api/trips", json={**TRIP, "generateItinerary": True}).json()

    assert [i["location"] for i in body["itinerary"]] == ["Senso-ji", "Tokyo Tower"]
    assert body["itinerary"][0]["lat"] == 35.7148


def test_get_trip_detail(client, trip_id):
    body = client.get(f"/api/trips/{trip_id}").json()
    assert body["id"] == trip_id
    assert body["settings"]["users"] == ["Alice", "Bob"]
    assert body["settings"]["isSetup"] is True
    assert body["itinerary"] == []
    assert body["balances"] == {"Alice": 0, "Bob": 0}


def test_unknown_trip_is_404(client):
    assert client.get("/api/trips/trip_missing").status_code == 404
    assert client.get("/api/trips/trip_missing/expenses").status_code == 404


def test_update_settings(client, trip_id):
    resp = client.patch(f"/api/trips/{trip_id}/settings", json={"users": ["Alice", "Bob", " Cara "], "days": 5})

    assert resp.status_code == 200
    assert resp.json()["settings"]["users"] == ["Alice", "Bob", "Cara"]
    assert resp.json()["settings"]["days"] == 5
    assert resp.json()["settings"]["destination"] == "Tokyo"


def test_update_settings_rejects_bad_values(client, trip_id):
    assert client.patch(f"/api/trips/{trip_id}/settings", json={"days": 400}).status_code == 400
    assert client.patch(f"/api/trips/{trip_id}/settings", json={"users": []}).status_code == 400
    assert client.get(f"/api/trips/{trip_id}").json()["settings"]["days"] == 3


def test_delete_trip(client, trip_id):
    assert client.delete(f"/api/trips/{trip_id}").status_code == 204
    assert client.get("/api/trips").json() == {"trips": [], "currentTripId": None, "syncStatus": "online"}


def test_itinerary_crud(client, trip_id):
    resp = client.post(f"/api/trips/{trip_id}/itinerary", json={"dayIndex": 0, "time": "9:30", "location": "Tokyo Tower"})
    assert resp.status_code == 201
    item = resp.json()
    assert item["time"] == "09:30"
    assert item["weather"] == {"temp": 18, "code": 2, "description": "Mostly clear"}

    resp = client.put(
        f"/api/trips/{trip_id}/itinerary/{item['id']}",
        json={**item, "location": "Senso-ji", "note": "Moved", "lat": None, "lon": None},
    )
    assert resp.status_code == 200
    assert resp.json()["lat"] == 35.7148

    day = client.get(f"/api/trips/{trip_id}/days/0").json()
    assert [i["location"] for i in day] == ["Senso-ji"]

    assert client.delete(f"/api/trips/{trip_id}/itinerary/{item['id']}").status_code == 204
    assert client.delete(f"/api/trips/{trip_id}/itinerary/{item['id']}").status_code == 404


def test_transport_leg_reports_duration(client, trip_id):
    resp = client.post(f"/api/trips/{trip_id}/itinerary", json={
        "dayIndex": 2, "time": "08:00", "location": "Kyoto", "type": "transport",
        "mode": "train", "number": "Nozomi 1", "origin": "Tokyo", "endTime": "10:15",
    })
    assert resp.status_code == 201
    assert resp.json()["durationMinutes"] == 135


def test_itinerary_validation(client, trip_id):
    assert client.post(f"/api/trips/{trip_id}/itinerary", json={"dayIndex": 3, "location": "Kyoto"}).status_code == 400
    assert client.post(f"/api/trips/{trip_id}/itinerary", json={"time": "25:00", "location": "Kyoto"}).status_code == 422
    assert client.put(f"/api/trips/{trip_id}/itinerary/123", json={"location": "Kyoto"}).status_code == 404
    assert client.get(f"/api/trips/{trip_id}/days/7").status_code == 400


def test_delete_day(client, trip_id):
    client.post(f"/api/trips/{trip_id}/itinerary", json={"dayIndex": 2, "location": "Kyoto"})

    resp = client.delete(f"/api/trips/{trip_id}/days/1", params={"viewedDay": 2})

    assert resp.json() == {"days": 2, "viewedDay": 1}
    assert [i["location"] for i in client.get(f"/api/trips/{trip_id}/days/1").json()] == ["Kyoto"]


def test_cannot_delete_only_day(client):
    trip_id = client.post("/api/trips", json={**TRIP, "days": 1}).json()["id"]
    assert client.delete(f"/api/trips/{trip_id}/days/0").status_code == 409


def test_expenses_and_wallet(client, trip_id, monkeypatch):
    class Rate:
        def raise_for_status(self):
            pass

        def json(self):
            return {"date": "2026-04-01", "rates": {"USD": 0.0066}}

    monkeypatch.setattr(exchange.httpx, "get", lambda *args, **kwargs: Rate())

    first = client.post(f"/api/trips/{trip_id}/expenses", json={"amount": 10000, "title": "Hotel", "payer": "Alice"})
    assert first.status_code == 201
    client.post(f"/api/trips/{trip_id}/expenses", json={"amount": 5000, "title": "Sushi", "payer": "Bob"})

    listed = client.get(f"/api/trips/{trip_id}/expenses").json()
    assert [e["title"] for e in listed] == ["Sushi", "Hotel"]

    wallet = client.get(f"/api/trips/{trip_id}/wallet").json()
    assert wallet["total"] == 15000
    assert wallet["balances"] == {"Alice": 2500, "Bob": -2500}
    assert wallet["transfers"] == [{"from": "Bob", "to": "Alice", "amount": 2500}]
    assert wallet["converted"] == {"currencyCode": "USD", "rate": 0.0066, "total": 99}

    assert client.delete(f"/api/trips/{trip_id}/expenses/{first.json()['id']}").status_code == 204
    assert client.delete(f"/api/trips/{trip_id}/expenses/{first.json()['id']}").status_code == 404


def test_expense_from_non_traveler_is_kept(client, trip_id):
    resp = client.post(f"/api/trips/{trip_id}/expenses", json={"amount": 100, "title": "Gift", "payer": "Carol"})
    assert resp.status_code == 201

    wallet = client.get(f"/api/trips/{trip_id}/wallet").json()
    assert wallet["balances"] == {"Alice": -50, "Bob": -50}


def test_negative_expense_rejected(client, trip_id):
    assert client.post(f"/api/trips/{trip_id}/expenses", json={"amount": -5, "payer": "Alice"}).status_code == 422


# --- AI proxy ---

def test_generate_itinerary_requires_destination(client):
    resp = client.post("/api/ai/generate-itinerary", json={"days": 3})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Destination is required"}


def test_generate_itinerary_without_providers(client):
    resp = client.post("/api/ai/generate-itinerary", json={"destination": "Tokyo"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate itinerary", "details": "No AI provider configured"}


def test_generate_itinerary(client, providers):
    providers.append(FakeProvider("gemini", reply=json.dumps({
        "itinerary": [{"dayIndex": 0, "time": "10:00", "location": "Meiji Shrine", "category": "attraction"}],
        "highlights": ["Shrines"],
    })))

    body = client.post("/api/ai/generate-itinerary", json={"destination": "Tokyo", "days": 2}).json()

    assert body["itinerary"] == [{"dayIndex": 0, "time": "10:00", "location": "Meiji Shrine", "note": "", "category": "attraction"}]
    assert body["highlights"] == ["Shrines"]
    assert body["tips"] == []


def test_refine_itinerary_requires_fields(client):
    resp = client.post("/api/ai/refine-itinerary", json={"destination": "Tokyo"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "currentItinerary, destination, and feedback are required"


def test_recommendations(client, providers):
    providers.append(FakeProvider("anthropic", reply="1. Ichiran\n2. Afuri"))

    resp = client.get("/api/ai/recommendations", params={"location": "Tokyo", "type": "restaurants"})

    assert resp.json() == {"location": "Tokyo", "type": "restaurants", "recommendations": ["1. Ichiran", "2. Afuri"]}


def test_recommendations_validation(client):
    assert client.get("/api/ai/recommendations").status_code == 400
    resp = client.get("/api/ai/recommendations", params={"location": "Tokyo", "type": "nightlife"})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Type must be one of")


def test_search_location(client):
    assert client.get("/api/ai/search-location").status_code == 400
    body = client.get("/api/ai/search-location", params={"query": "kyo"}).json()
    assert [r["name"] for r in body["results"]] == ["Tokyo Tower", "Kyoto"]


def test_location_info(client):
    assert client.get("/api/ai/location-info", params={"location": "Kyoto"}).json()["coordinates"] == {
        "lat": 35.0116, "lon": 135.7681,
    }
    resp = client.get("/api/ai/location-info", params={"location": "Atlantis"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Location not found"}
