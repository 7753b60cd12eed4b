"""Geocoding, weather and country lookups against free public APIs.

Every lookup has a short timeout and degrades to an empty result; callers
never see network errors.
"""

import asyncio
import logging
import os

import httpx

from travelflow.documents import Coordinates, WeatherSnapshot, describe_weather
from travelflow.settlement import round_half_up

logger = logging.getLogger("travelflow")

OPEN_METEO_GEOCODING = "https://geocoding-api.open-meteo.com/v1/search"
OPEN_METEO_FORECAST = "https://api.open-meteo.com/v1/forecast"
NOMINATIM_SEARCH = "https://nominatim.openstreetmap.org/search"
REST_COUNTRIES = "https://restcountries.com/v3.1/alpha"

GEOCODING_TIMEOUT = float(os.getenv("GEOCODING_TIMEOUT", "3"))
RESOLVE_TIMEOUT = float(os.getenv("RESOLVE_TIMEOUT", "2"))
WEATHER_TIMEOUT = float(os.getenv("WEATHER_TIMEOUT", "2"))
USER_AGENT = os.getenv("HTTP_USER_AGENT", "travelflow-server/0.1")

LOOKUP_ERRORS = (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError)


class LocationService:
    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(headers={"User-Agent": USER_AGENT})

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str, params: dict | None, timeout: float):
        resp = await self._client.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        return resp.json()

    async def search(self, query: str, count: int = 5) -> list[dict]:
        try:
            data = await self._get_json(
                OPEN_METEO_GEOCODING,
                {"name": query, "count": count, "language": "en", "format": "json"},
                GEOCODING_TIMEOUT,
            )
        except LOOKUP_ERRORS as e:
            logger.warning("Location search failed", extra={"extra_data": {"query": query, "error": str(e)}})
            return []

        return [
            {
                "name": r.get("name"),
                "latitude": r.get("latitude"),
                "longitude": r.get("longitude"),
                "country": r.get("country"),
                "country_code": r.get("country_code"),
                "admin1": r.get("admin1"),
            }
            for r in data.get("results") or []
        ]

    async def resolve(self, place: str) -> Coordinates | None:
        """Coordinates for a place name: Open-Meteo first, then Nominatim."""
        try:
            data = await self._get_json(
                OPEN_METEO_GEOCODING,
                {"name": place, "count": 1, "language": "en", "format": "json"},
                RESOLVE_TIMEOUT,
            )
            results = data.get("results") or []
            if results:
                return Coordinates(lat=results[0]["latitude"], lon=results[0]["longitude"])

            logger.info("Open-Meteo has no match, trying Nominatim", extra={"extra_data": {"place": place}})
            found = await self._get_json(
                NOMINATIM_SEARCH,
                {"q": place, "format": "json", "limit": 1},
                GEOCODING_TIMEOUT,
            )
            if found:
                return Coordinates(lat=float(found[0]["lat"]), lon=float(found[0]["lon"]))
        except LOOKUP_ERRORS as e:
            logger.warning("Geocoding failed", extra={"extra_data": {"place": place, "error": str(e)}})
            return None

        logger.info("No coordinates found", extra={"extra_data": {"place": place}})
        return None

    async def current_weather(self, lat: float, lon: float) -> WeatherSnapshot | None:
        try:
            data = await self._get_json(
                OPEN_METEO_FORECAST,
                {"latitude": lat, "longitude": lon, "current_weather": "true"},
                WEATHER_TIMEOUT,
            )
            current = data.get("current_weather")
            if not current:
                return None
            return WeatherSnapshot(
                temp=round_half_up(current["temperature"]),
                code=int(current["weathercode"]),
            )
        except LOOKUP_ERRORS as e:
            logger.warning("Weather lookup failed", extra={"extra_data": {"lat": lat, "lon": lon, "error": str(e)}})
            return None

    async def country_info(self, country_code: str) -> dict | None:
        try:
            data = await self._get_json(f"{REST_COUNTRIES}/{country_code}", None, GEOCODING_TIMEOUT)
            country = data[0]
            currency_code = next(iter(country["currencies"]))
            languages = list((country.get("languages") or {}).values())
            return {
                "currencyCode": currency_code,
                "currencySymbol": country["currencies"][currency_code].get("symbol") or "$",
                "langName": languages[0] if languages else None,
            }
        except (*LOOKUP_ERRORS, StopIteration) as e:
            logger.warning("Country lookup failed", extra={"extra_data": {"country_code": country_code, "error": str(e)}})
            return None

    async def location_info(self, location: str) -> dict | None:
        """Coordinates, current weather and country details for a place."""
        matches = await self.search(location, count=1)
        if matches:
            top = matches[0]
            coords = Coordinates(lat=top["latitude"], lon=top["longitude"])
            country_code = top.get("country_code")
        else:
            coords = await self.resolve(location)
            country_code = None
        if coords is None:
            return None

        if country_code:
            weather, country = await asyncio.gather(
                self.current_weather(coords.lat, coords.lon),
                self.country_info(country_code),
            )
        else:
            weather, country = await self.current_weather(coords.lat, coords.lon), None

        return {
            "location": location,
            "coordinates": {"lat": coords.lat, "lon": coords.lon},
            "weather": (
                {"temp": weather.temp, "code": weather.code, "description": describe_weather(weather.code)}
                if weather else None
            ),
            "countryInfo": country,
        }
