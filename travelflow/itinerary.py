import logging
from typing import Protocol

from travelflow.documents import Coordinates, ItineraryDraft, ItineraryItem, ProposedItem, WeatherSnapshot
from travelflow.repository import TripRepository

logger = logging.getLogger("travelflow")


class LocationLookup(Protocol):
    """Geocoding and weather. Both return None instead of raising."""

    async def resolve(self, place: str) -> Coordinates | None: ...

    async def current_weather(self, lat: float, lon: float) -> WeatherSnapshot | None: ...


class ItineraryManager:
    """CRUD over the current trip's itinerary with inline enrichment.

    Enrichment is awaited before anything is committed, so cancelling one
    of these coroutines mid-lookup leaves the itinerary untouched.
    """

    def __init__(self, repository: TripRepository, locations: LocationLookup):
        self.repository = repository
        self.locations = locations

    def _check_day(self, day_index: int) -> None:
        days = self.repository.settings.days
        if not 0 <= day_index < days:
            raise ValueError(f"Day index {day_index} is outside a {days}-day trip")

    async def add_item(self, draft: ItineraryDraft) -> ItineraryItem:
        self._check_day(draft.day_index)

        coords = await self.locations.resolve(draft.location)
        weather = None
        if coords:
            weather = await self.locations.current_weather(coords.lat, coords.lon)

        item = ItineraryItem(
            **draft.model_dump(),
            id=self.repository.next_id(),
            lat=coords.lat if coords else None,
            lon=coords.lon if coords else None,
            weather=weather,
        )
        self.repository.save(itinerary=[*self.repository.itinerary, item])
        return item

    async def update_item(self, item: ItineraryItem) -> ItineraryItem | None:
        if self.find(item.id) is None:
            return None
        self._check_day(item.day_index)

        # Send an item without lat/lon to have a renamed place geocoded again
        if item.has_coordinates:
            lat, lon = item.lat, item.lon
        else:
            coords = await self.locations.resolve(item.location)
            lat, lon = (coords.lat, coords.lon) if coords else (None, None)

        weather = item.weather
        if lat is not None and lon is not None:
            weather = await self.locations.current_weather(lat, lon) or item.weather

        updated = item.model_copy(update={"lat": lat, "lon": lon, "weather": weather})
        self.repository.save(
            itinerary=[updated if i.id == item.id else i for i in self.repository.itinerary]
        )
        return updated

    def delete_item(self, item_id: int) -> bool:
        items = self.repository.itinerary
        for index, item in enumerate(items):
            if item.id == item_id:
                self.repository.save(itinerary=items[:index] + items[index + 1:])
                return True
        return False

    def delete_day(self, day_index: int, viewed_day: int | None = None) -> int | None:
        """Drop a whole day and close the gap.

        Returns ``viewed_day`` clamped to the new last day. One-day trips
        are left as they are.
        """
        settings = self.repository.settings
        if settings.days <= 1:
            return viewed_day
        self._check_day(day_index)

        itinerary = [
            i if i.day_index < day_index else i.model_copy(update={"day_index": i.day_index - 1})
            for i in self.repository.itinerary
            if i.day_index != day_index
        ]
        new_settings = settings.model_copy(update={"days": settings.days - 1})
        self.repository.save(settings=new_settings, itinerary=itinerary)
        logger.info(
            "Itinerary day deleted",
            extra={"extra_data": {"trip_id": self.repository.current_trip_id, "day_index": day_index}},
        )

        if viewed_day is None:
            return None
        return min(viewed_day, new_settings.days - 1)

    def find(self, item_id: int) -> ItineraryItem | None:
        return next((i for i in self.repository.itinerary if i.id == item_id), None)

    def items_for_day(self, day_index: int) -> list[ItineraryItem]:
        # HH:MM is always zero-padded, so string order is time order
        return sorted(
            (i for i in self.repository.itinerary if i.day_index == day_index),
            key=lambda i: i.time,
        )

    async def apply_generated(self, proposals: list[ProposedItem]) -> list[ItineraryItem]:
        """Append AI proposals, then geocode them one by one, saving after each hit."""
        days = self.repository.settings.days
        items = []
        for proposal in proposals:
            if proposal.day_index >= days:
                logger.warning(
                    "Skipping generated item beyond trip length",
                    extra={"extra_data": {"day_index": proposal.day_index, "days": days}},
                )
                continue
            items.append(ItineraryItem(
                id=self.repository.next_id(),
                day_index=proposal.day_index,
                time=proposal.time,
                location=proposal.location,
                note=proposal.note or None,
            ))

        self.repository.save(itinerary=[*self.repository.itinerary, *items])

        for item in items:
            coords = await self.locations.resolve(item.location)
            if coords is None:
                continue
            self.repository.save(itinerary=[
                i.model_copy(update={"lat": coords.lat, "lon": coords.lon}) if i.id == item.id else i
                for i in self.repository.itinerary
            ])

        return [self.find(item.id) or item for item in items]
