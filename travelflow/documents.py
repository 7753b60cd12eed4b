"""Trip document models as persisted in the per-user document store.

The stored JSON keeps the camelCase keys written by the web client
(``dayIndex``, ``currencyCode``, ``lastModified`` ...), so every model
uses a camelCase alias generator and is dumped with ``by_alias=True``.
"""

import re
import secrets
import threading
import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
MAX_TRIP_DAYS = 365


def now_millis() -> int:
    return int(time.time() * 1000)


def normalize_time(value: str) -> str:
    """Zero-pad single-digit hours ("9:00" -> "09:00") and validate HH:MM."""
    value = value.strip()
    if re.match(r"^\d:[0-5]\d$", value):
        value = "0" + value
    if not TIME_PATTERN.match(value):
        raise ValueError(f"Time must be HH:MM in 24-hour format, got {value!r}")
    return value


class DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Trip pieces ---

class TripSettings(DocumentModel):
    is_setup: bool = False
    destination: str = ""
    departure_city: str | None = None
    start_date: str = ""
    end_date: str | None = None
    days: int = Field(default=3, ge=1, le=MAX_TRIP_DAYS)
    users: list[str] = Field(default_factory=lambda: ["Me", "Partner"], min_length=1)
    currency_code: str = "USD"
    currency_symbol: str = "$"
    departure_currency_code: str | None = "USD"
    departure_currency_symbol: str | None = "$"
    target_lang: str = "en"
    lang_name: str = "English"
    auto_update_rate: bool = True


class WeatherSnapshot(DocumentModel):
    temp: int
    code: int


def describe_weather(code: int) -> str:
    if code == 0:
        return "Clear sky"
    if code < 4:
        return "Mostly clear"
    if code < 50:
        return "Cloudy"
    if code < 70:
        return "Rainy"
    if code < 80:
        return "Snowy"
    return "Stormy"


class ItineraryItem(DocumentModel):
    id: int
    day_index: int = Field(ge=0)
    time: str
    location: str
    note: str | None = None
    lat: float | None = None
    lon: float | None = None
    weather: WeatherSnapshot | None = None
    type: Literal["activity", "transport"] = "activity"

    # transport legs only
    mode: Literal["flight", "train", "taxi"] | None = None
    number: str | None = None
    origin: str | None = None
    end_time: str | None = None

    @field_validator("time", "end_time")
    @classmethod
    def _check_time(cls, value):
        if value is None:
            return value
        return normalize_time(value)

    @model_validator(mode="after")
    def _check_shape(self):
        # Older documents store 0/0 for "not resolved"
        if self.lat == 0 and self.lon == 0:
            self.lat = None
            self.lon = None
        if self.type == "transport" and (self.mode is None or self.end_time is None):
            raise ValueError("Transport items need a mode and an end time")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


class ItineraryDraft(DocumentModel):
    """An itinerary entry as entered, before id assignment and enrichment."""

    day_index: int = Field(default=0, ge=0)
    time: str = "09:00"
    location: str = Field(min_length=1)
    note: str | None = None
    type: Literal["activity", "transport"] = "activity"
    mode: Literal["flight", "train", "taxi"] | None = None
    number: str | None = None
    origin: str | None = None
    end_time: str | None = None

    @field_validator("time", "end_time")
    @classmethod
    def _check_time(cls, value):
        if value is None:
            return value
        return normalize_time(value)

    @model_validator(mode="after")
    def _check_transport(self):
        if self.type == "transport" and (self.mode is None or self.end_time is None):
            raise ValueError("Transport items need a mode and an end time")
        return self


class ProposedItem(DocumentModel):
    """One entry of an AI-generated itinerary."""

    day_index: int = Field(default=0, ge=0)
    time: str = "12:00"
    location: str = Field(min_length=1)
    note: str = ""
    category: str | None = None

    @field_validator("time")
    @classmethod
    def _check_time(cls, value):
        return normalize_time(value)


class Coordinates(DocumentModel):
    lat: float
    lon: float


def transport_duration_minutes(item: ItineraryItem) -> int | None:
    """Minutes from departure (``time``) to arrival (``end_time``).

    Arrival earlier than departure means the leg crosses midnight.
    """
    if item.type != "transport" or item.end_time is None:
        return None
    start_h, start_m = map(int, item.time.split(":"))
    end_h, end_m = map(int, item.end_time.split(":"))
    minutes = (end_h * 60 + end_m) - (start_h * 60 + start_m)
    if minutes < 0:
        minutes += 24 * 60
    return minutes


class Expense(DocumentModel):
    id: int
    amount: float = Field(ge=0)
    title: str = ""
    payer: str


class TripSnapshot(DocumentModel):
    settings: TripSettings
    itinerary: list[ItineraryItem] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    last_modified: int | None = None


# --- Whole-user documents ---

class MultiTripDocument(DocumentModel):
    trips: dict[str, TripSnapshot] = Field(default_factory=dict)
    current_trip_id: str | None = None
    last_modified: int | None = None


class LegacyTripDocument(DocumentModel):
    """Single-trip shape written before users could keep several trips."""

    settings: TripSettings
    itinerary: list[ItineraryItem] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)


def decode_document(raw: dict | None) -> MultiTripDocument | LegacyTripDocument | None:
    if not raw:
        return None
    if isinstance(raw.get("trips"), dict):
        return MultiTripDocument.model_validate(raw)
    settings = raw.get("settings")
    if isinstance(settings, dict) and settings.get("isSetup"):
        return LegacyTripDocument.model_validate(raw)
    return None


# --- Identifiers ---

class IdGenerator:
    """Strictly increasing integer ids seeded from the millisecond clock."""

    def __init__(self, clock=now_millis):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            self._last = max(self._clock(), self._last + 1)
            return self._last


next_item_id = IdGenerator()


def new_trip_id(prefix: str = "trip") -> str:
    return f"{prefix}_{secrets.token_hex(8)}"
