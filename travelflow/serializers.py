from travelflow.documents import ItineraryItem, TripSnapshot, describe_weather, transport_duration_minutes
from travelflow.repository import TripRepository
from travelflow.settlement import compute_balances, convert_total, suggest_transfers, total_spent


def serialize_item(item: ItineraryItem) -> dict:
    data = item.to_document()
    if item.weather:
        data["weather"]["description"] = describe_weather(item.weather.code)
    duration = transport_duration_minutes(item)
    if duration is not None:
        data["durationMinutes"] = duration
    return data


def serialize_trip_summary(trip_id: str, trip: TripSnapshot, is_current: bool = False) -> dict:
    return {
        "id": trip_id,
        "destination": trip.settings.destination,
        "startDate": trip.settings.start_date,
        "days": trip.settings.days,
        "travelerCount": len(trip.settings.users),
        "itemCount": len(trip.itinerary),
        "lastModified": trip.last_modified,
        "isCurrent": is_current,
    }


def serialize_trip_list(repo: TripRepository) -> dict:
    return {
        "trips": [
            serialize_trip_summary(trip_id, trip, trip_id == repo.current_trip_id)
            for trip_id, trip in repo.trips.items()
        ],
        "currentTripId": repo.current_trip_id,
        "syncStatus": repo.sync_status.value,
    }


def serialize_wallet(repo: TripRepository, rate: float | None = None) -> dict:
    settings = repo.settings
    balances = compute_balances(repo.expenses, settings.users)
    total = total_spent(repo.expenses)
    wallet = {
        "currencyCode": settings.currency_code,
        "currencySymbol": settings.currency_symbol,
        "total": total,
        "balances": balances,
        "transfers": [t.to_document() for t in suggest_transfers(balances)],
    }
    if rate is not None and settings.departure_currency_code:
        wallet["converted"] = {
            "currencyCode": settings.departure_currency_code,
            "rate": rate,
            "total": convert_total(total, rate),
        }
    return wallet


def serialize_trip(repo: TripRepository) -> dict:
    return {
        "id": repo.current_trip_id,
        "settings": repo.settings.to_document(),
        "itinerary": [serialize_item(i) for i in repo.itinerary],
        "expenses": [e.to_document() for e in repo.expenses],
        "lastModified": repo.trips[repo.current_trip_id].last_modified if repo.current_trip_id in repo.trips else None,
        "balances": compute_balances(repo.expenses, repo.settings.users),
        "syncStatus": repo.sync_status.value,
    }
