import logging

from fastapi import APIRouter, Depends, Query, Request

from travelflow.deps import get_location_service, get_translator, get_trip_planner
from travelflow.documents import MAX_TRIP_DAYS
from travelflow.errors import APIError
from travelflow.locations import LocationService
from travelflow.planner.chain import PlannerUnavailable
from travelflow.planner.service import RECOMMENDATION_KINDS, TripPlanner
from travelflow.ratelimit import limiter
from travelflow.schemas import GenerateItineraryIn, RefineItineraryIn
from travelflow.translation import TranslationFailed, Translator

logger = logging.getLogger("travelflow")

router = APIRouter(prefix="/ai")


def _plan_body(plan) -> dict:
    return plan.model_dump(by_alias=True, exclude_none=True)


@router.post("/generate-itinerary")
@limiter.limit("20/minute")
async def generate_itinerary(
    request: Request,
    data: GenerateItineraryIn,
    planner: TripPlanner = Depends(get_trip_planner),
):
    if not data.destination:
        raise APIError(400, "Destination is required")
    if not 1 <= data.days <= MAX_TRIP_DAYS:
        raise APIError(400, f"Days must be between 1 and {MAX_TRIP_DAYS}")

    try:
        plan = await planner.generate_itinerary(data.destination, data.days, data.interests)
    except PlannerUnavailable as e:
        logger.error("Itinerary generation failed", extra={"extra_data": {"destination": data.destination}})
        raise APIError(500, "Failed to generate itinerary", str(e))
    return _plan_body(plan)


@router.post("/refine-itinerary")
@limiter.limit("20/minute")
async def refine_itinerary(
    request: Request,
    data: RefineItineraryIn,
    planner: TripPlanner = Depends(get_trip_planner),
):
    if not data.current_itinerary or not data.destination or not data.feedback:
        raise APIError(400, "currentItinerary, destination, and feedback are required")

    try:
        plan = await planner.refine_itinerary(
            data.current_itinerary, data.destination, data.feedback, data.days or 3
        )
    except PlannerUnavailable as e:
        logger.error("Itinerary refinement failed", extra={"extra_data": {"destination": data.destination}})
        raise APIError(500, "Failed to refine itinerary", str(e))
    return _plan_body(plan)


@router.get("/recommendations")
@limiter.limit("30/minute")
async def recommendations(
    request: Request,
    location: str | None = None,
    type: str = "general",
    planner: TripPlanner = Depends(get_trip_planner),
):
    if not location:
        raise APIError(400, "Location is required")
    if type not in RECOMMENDATION_KINDS:
        raise APIError(400, f"Type must be one of: {', '.join(RECOMMENDATION_KINDS)}")

    try:
        items = await planner.recommendations(location, type)
    except PlannerUnavailable as e:
        raise APIError(500, "Failed to get recommendations", str(e))
    return {"location": location, "type": type, "recommendations": items}


@router.get("/search-location")
async def search_location(
    query: str | None = None,
    locations: LocationService = Depends(get_location_service),
):
    if not query:
        raise APIError(400, "Query is required")
    return {"query": query, "results": await locations.search(query)}


@router.get("/location-info")
async def location_info(
    location: str | None = None,
    locations: LocationService = Depends(get_location_service),
):
    if not location:
        raise APIError(400, "Location is required")

    info = await locations.location_info(location)
    if info is None:
        raise APIError(404, "Location not found")
    return info


@router.get("/translate")
@limiter.limit("60/minute")
async def translate(
    request: Request,
    text: str | None = None,
    target_lang: str | None = Query(None, alias="targetLang"),
    translator: Translator = Depends(get_translator),
):
    if not text or not target_lang:
        raise APIError(400, "text and targetLang are required")

    try:
        translated = await translator.translate(text, target_lang)
    except TranslationFailed as e:
        raise APIError(500, "Translation error", str(e))
    return {"text": text, "targetLang": target_lang, "translation": translated}
