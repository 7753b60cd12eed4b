from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from travelflow.documents import ItineraryDraft, WeatherSnapshot


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Trips ---

class CreateTripIn(CamelModel):
    destination: str
    departure_city: str | None = None
    start_date: str = ""
    end_date: str | None = None
    days: int = 3
    users: list[str] = ["Me", "Partner"]
    currency_code: str = "USD"
    currency_symbol: str = "$"
    departure_currency_code: str | None = None
    departure_currency_symbol: str | None = None
    target_lang: str = "en"
    lang_name: str = "English"
    auto_update_rate: bool = True
    generate_itinerary: bool = False
    interests: list[str] | None = None


class UpdateSettingsIn(CamelModel):
    destination: str | None = None
    departure_city: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    days: int | None = None
    users: list[str] | None = None
    currency_code: str | None = None
    currency_symbol: str | None = None
    departure_currency_code: str | None = None
    departure_currency_symbol: str | None = None
    target_lang: str | None = None
    lang_name: str | None = None
    auto_update_rate: bool | None = None


# --- Itinerary ---

class ItineraryItemIn(ItineraryDraft):
    pass


class ItineraryItemUpdateIn(ItineraryDraft):
    lat: float | None = None
    lon: float | None = None
    weather: WeatherSnapshot | None = None


# --- Expenses ---

class ExpenseIn(CamelModel):
    amount: float = Field(ge=0)
    title: str = ""
    payer: str


# --- AI proxy ---

class GenerateItineraryIn(CamelModel):
    destination: str | None = None
    days: int = 3
    interests: list[str] | None = None


class RefineItineraryIn(CamelModel):
    current_itinerary: list[dict] | None = None
    destination: str | None = None
    feedback: str | None = None
    days: int | None = None
