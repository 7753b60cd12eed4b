import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from travelflow.database import get_db
from travelflow.deps import get_location_service, get_repository, get_trip, get_trip_planner
from travelflow.documents import MAX_TRIP_DAYS, TripSettings
from travelflow.exchange import rate_or_none
from travelflow.itinerary import ItineraryManager
from travelflow.locations import LocationService
from travelflow.planner.service import TripPlanner
from travelflow.ratelimit import limiter
from travelflow.repository import TripRepository
from travelflow.schemas import CreateTripIn, UpdateSettingsIn
from travelflow.serializers import serialize_trip, serialize_trip_list, serialize_wallet

logger = logging.getLogger("travelflow")

router = APIRouter()


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ()))
    return f"{field}: {first['msg']}" if field else first["msg"]


@router.get("/trips")
def list_trips(repo: TripRepository = Depends(get_repository)):
    return serialize_trip_list(repo)


@router.post("/trips", status_code=201)
@limiter.limit("30/hour")
async def create_trip(
    request: Request,
    data: CreateTripIn,
    repo: TripRepository = Depends(get_repository),
    planner: TripPlanner = Depends(get_trip_planner),
    locations: LocationService = Depends(get_location_service),
):
    if not data.destination.strip():
        raise HTTPException(status_code=400, detail="Destination is required")
    if not 1 <= data.days <= MAX_TRIP_DAYS:
        raise HTTPException(status_code=400, detail=f"Days must be between 1 and {MAX_TRIP_DAYS}")
    users = [u.strip() for u in data.users if u.strip()]
    if not users:
        raise HTTPException(status_code=400, detail="At least 1 traveler required")

    settings = TripSettings(
        is_setup=True,
        destination=data.destination.strip(),
        departure_city=data.departure_city,
        start_date=data.start_date,
        end_date=data.end_date,
        days=data.days,
        users=users,
        currency_code=data.currency_code.upper(),
        currency_symbol=data.currency_symbol,
        departure_currency_code=data.departure_currency_code,
        departure_currency_symbol=data.departure_currency_symbol,
        target_lang=data.target_lang,
        lang_name=data.lang_name,
        auto_update_rate=data.auto_update_rate,
    )
    repo.create_new_trip()
    repo.start_trip(settings)

    if data.generate_itinerary:
        proposals = await planner.plan_or_placeholder(settings.destination, settings.days, data.interests)
        await ItineraryManager(repo, locations).apply_generated(proposals)

    return serialize_trip(repo)


@router.get("/trips/{trip_id}")
def get_trip_detail(repo: TripRepository = Depends(get_trip)):
    return serialize_trip(repo)


@router.patch("/trips/{trip_id}/settings")
def update_settings(data: UpdateSettingsIn, repo: TripRepository = Depends(get_trip)):
    changes = data.model_dump(exclude_unset=True)
    if "users" in changes and changes["users"] is not None:
        changes["users"] = [u.strip() for u in changes["users"] if u.strip()]
    # Required settings cannot be cleared
    changes = {k: v for k, v in changes.items() if v is not None or k in ("departure_city", "end_date")}

    try:
        repo.update_settings(**changes)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_message(e))
    return serialize_trip(repo)


@router.delete("/trips/{trip_id}", status_code=204)
def delete_trip(trip_id: str, repo: TripRepository = Depends(get_trip)):
    repo.delete_trip(trip_id)
    return None


@router.get("/trips/{trip_id}/wallet")
def get_wallet(repo: TripRepository = Depends(get_trip), db: Session = Depends(get_db)):
    settings = repo.settings
    rate = None
    if (
        settings.auto_update_rate
        and settings.departure_currency_code
        and settings.departure_currency_code.upper() != settings.currency_code.upper()
        and repo.expenses
    ):
        rate = rate_or_none(db, settings.currency_code, settings.departure_currency_code)
    return serialize_wallet(repo, rate)
