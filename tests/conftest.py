import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from travelflow.database import Base, SessionLocal, engine
from travelflow import models  # noqa: F401  registers tables on Base
from travelflow.documents import Coordinates, TripSettings, WeatherSnapshot
from travelflow.persistence import PersistenceError, SqlDocumentStore
from travelflow.planner.chain import PlannerChain
from travelflow.planner.service import TripPlanner
from travelflow.repository import TripRepository
from travelflow.session import UserSession


class FakeLocations:
    """LocationLookup double with per-call counters."""

    def __init__(self, places=None, weather=None):
        self.places = places if places is not None else {}
        self.weather = weather
        self.resolve_calls = []
        self.weather_calls = []

    async def resolve(self, place):
        self.resolve_calls.append(place)
        found = self.places.get(place)
        return Coordinates(lat=found[0], lon=found[1]) if found else None

    async def current_weather(self, lat, lon):
        self.weather_calls.append((lat, lon))
        return self.weather

    async def search(self, query, count=5):
        return [
            {"name": name, "latitude": lat, "longitude": lon, "country": None, "country_code": None, "admin1": None}
            for name, (lat, lon) in self.places.items()
            if query.lower() in name.lower()
        ][:count]

    async def location_info(self, location):
        found = self.places.get(location)
        if not found:
            return None
        return {"location": location, "coordinates": {"lat": found[0], "lon": found[1]}, "weather": None, "countryInfo": None}


class FakeProvider:
    def __init__(self, name, reply=None, error=None):
        self.name = name
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


class FlakyStore:
    """Wraps a store and rejects the next ``failures`` writes."""

    def __init__(self, inner, failures=0):
        self.inner = inner
        self.failures = failures
        self.writes = 0

    def subscribe(self, user_id, on_snapshot, on_error):
        return self.inner.subscribe(user_id, on_snapshot, on_error)

    def write_document(self, user_id, doc):
        self.writes += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError("store unavailable")
        self.inner.write_document(user_id, doc)


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return SqlDocumentStore()


@pytest.fixture
def locations():
    return FakeLocations(
        places={
            "Tokyo Tower": (35.6586, 139.7454),
            "Senso-ji": (35.7148, 139.7967),
            "Kyoto": (35.0116, 135.7681),
        },
        weather=WeatherSnapshot(temp=18, code=2),
    )


@pytest.fixture
def make_repo(store):
    repos = []

    def _make(user_id="user-1", backing=None):
        repo = TripRepository(UserSession(user_id), backing or store, sleep=lambda _: None)
        repo.load()
        repos.append(repo)
        return repo

    yield _make
    for repo in repos:
        if repo.session.is_active:
            repo.close()


@pytest.fixture
def repo(make_repo):
    return make_repo()


@pytest.fixture
def trip_settings():
    return TripSettings(destination="Tokyo", start_date="2026-04-01", days=3, users=["Alice", "Bob"], currency_code="JPY", currency_symbol="¥")


@pytest.fixture
def providers():
    return []


@pytest.fixture
def client(store, locations, providers):
    from travelflow.deps import get_document_store, get_location_service, get_trip_planner
    from travelflow.main import app

    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_location_service] = lambda: locations
    app.dependency_overrides[get_trip_planner] = lambda: TripPlanner(PlannerChain(providers))
    test_client = TestClient(app)
    test_client.cookies.set("ctk", "browser-1")
    yield test_client
    app.dependency_overrides.clear()
