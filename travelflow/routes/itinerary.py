from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from travelflow.deps import get_itinerary_manager
from travelflow.documents import ItineraryItem
from travelflow.itinerary import ItineraryManager
from travelflow.schemas import ItineraryItemIn, ItineraryItemUpdateIn
from travelflow.serializers import serialize_item

router = APIRouter()


def _check_day(manager: ItineraryManager, day_index: int) -> None:
    days = manager.repository.settings.days
    if not 0 <= day_index < days:
        raise HTTPException(status_code=400, detail=f"Day index must be between 0 and {days - 1}")


@router.get("/trips/{trip_id}/days/{day_index}")
def list_day(day_index: int, manager: ItineraryManager = Depends(get_itinerary_manager)):
    _check_day(manager, day_index)
    return [serialize_item(i) for i in manager.items_for_day(day_index)]


@router.delete("/trips/{trip_id}/days/{day_index}")
def delete_day(
    day_index: int,
    viewed_day: int | None = Query(None, alias="viewedDay"),
    manager: ItineraryManager = Depends(get_itinerary_manager),
):
    _check_day(manager, day_index)
    if manager.repository.settings.days <= 1:
        raise HTTPException(status_code=409, detail="A trip needs at least one day")
    viewed = manager.delete_day(day_index, viewed_day)
    return {"days": manager.repository.settings.days, "viewedDay": viewed}


@router.post("/trips/{trip_id}/itinerary", status_code=201)
async def add_item(data: ItineraryItemIn, manager: ItineraryManager = Depends(get_itinerary_manager)):
    _check_day(manager, data.day_index)
    item = await manager.add_item(data)
    return serialize_item(item)


@router.put("/trips/{trip_id}/itinerary/{item_id}")
async def update_item(
    item_id: int,
    data: ItineraryItemUpdateIn,
    manager: ItineraryManager = Depends(get_itinerary_manager),
):
    _check_day(manager, data.day_index)
    try:
        item = ItineraryItem.model_validate({**data.model_dump(), "id": item_id})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e.errors()[0]["msg"]))

    updated = await manager.update_item(item)
    if updated is None:
        raise HTTPException(status_code=404, detail="Itinerary item not found")
    return serialize_item(updated)


@router.delete("/trips/{trip_id}/itinerary/{item_id}", status_code=204)
def delete_item(item_id: int, manager: ItineraryManager = Depends(get_itinerary_manager)):
    if not manager.delete_item(item_id):
        raise HTTPException(status_code=404, detail="Itinerary item not found")
    return None
