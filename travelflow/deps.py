import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from travelflow.itinerary import ItineraryManager
from travelflow.locations import LocationService
from travelflow.persistence import DocumentStore, SqlDocumentStore
from travelflow.planner.factory import get_planner_chain
from travelflow.planner.service import TripPlanner
from travelflow.repository import TripRepository
from travelflow.session import UserSession
from travelflow.translation import Translator

logger = logging.getLogger("travelflow")


@lru_cache
def get_document_store() -> DocumentStore:
    return SqlDocumentStore()


@lru_cache
def get_location_service() -> LocationService:
    return LocationService()


@lru_cache
def get_trip_planner() -> TripPlanner:
    return TripPlanner(get_planner_chain())


@lru_cache
def get_translator() -> Translator:
    return Translator()


def get_ctk(request: Request) -> str | None:
    """Read the cookie tracking key from the request."""
    return getattr(request.state, "ctk", None)


def get_repository(request: Request, store: DocumentStore = Depends(get_document_store)):
    """A repository loaded for the requesting browser, torn down afterwards."""
    repo = TripRepository(UserSession(get_ctk(request)), store)
    repo.load()
    try:
        yield repo
    finally:
        repo.close()


def get_trip(trip_id: str, repo: TripRepository = Depends(get_repository)) -> TripRepository:
    """The repository with ``trip_id`` switched in as the current trip."""
    if not repo.switch_trip(trip_id):
        raise HTTPException(status_code=404, detail="Trip not found")
    return repo


def get_itinerary_manager(
    repo: TripRepository = Depends(get_trip),
    locations: LocationService = Depends(get_location_service),
) -> ItineraryManager:
    return ItineraryManager(repo, locations)
