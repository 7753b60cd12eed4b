"""In-memory trip collection for one signed-in user, synced to the document store."""

import enum
import logging
import time

from pydantic import ValidationError

from travelflow.documents import (
    Expense,
    ItineraryItem,
    LegacyTripDocument,
    MultiTripDocument,
    TripSettings,
    TripSnapshot,
    decode_document,
    new_trip_id,
    next_item_id,
    now_millis,
)
from travelflow.persistence import DocumentStore, PersistenceError, Subscription
from travelflow.session import SessionClosed, UserSession
from travelflow.settlement import compute_balances

logger = logging.getLogger("travelflow")


class SyncStatus(str, enum.Enum):
    OFFLINE = "offline"
    SYNCING = "syncing"
    ONLINE = "online"


class TripRepository:
    """Owns ``{trip_id: TripSnapshot}`` and the working copy of the current trip.

    ``settings``, ``itinerary`` and ``expenses`` are the editable state of the
    current trip. They are always replaced with new lists, never mutated in
    place, and every ``save`` writes the full collection in one document.
    """

    def __init__(self, session: UserSession, store: DocumentStore, id_generator=next_item_id, sleep=time.sleep):
        self.session = session
        self.store = store
        self.next_id = id_generator
        self._sleep = sleep
        self._subscription: Subscription | None = None
        self._unflushed = False

        self.sync_status = SyncStatus.OFFLINE
        self.trips: dict[str, TripSnapshot] = {}
        self.current_trip_id: str | None = None
        self._reset_working()

    # --- State helpers ---

    def _reset_working(self) -> None:
        self.settings = TripSettings()
        self.itinerary: list[ItineraryItem] = []
        self.expenses: list[Expense] = []

    def _load_working(self, trip_id: str) -> None:
        trip = self.trips[trip_id]
        self.current_trip_id = trip_id
        self.settings = trip.settings
        self.itinerary = list(trip.itinerary)
        self.expenses = list(trip.expenses)

    def _require_open(self) -> None:
        if not self.session.is_active:
            raise SessionClosed("Repository is not attached to an active session")

    @property
    def has_unflushed_changes(self) -> bool:
        return self._unflushed

    # --- Subscription ---

    def load(self) -> None:
        """Start following the user's document. Snapshots may arrive at any time."""
        self.session.activate()
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None

        self.trips = {}
        self.current_trip_id = None
        self._reset_working()

        if self.session.is_guest:
            self.sync_status = SyncStatus.OFFLINE
            return

        self.sync_status = SyncStatus.SYNCING
        self._subscription = self.store.subscribe(self.session.user_id, self._on_snapshot, self._on_error)

    def _on_error(self, error: Exception) -> None:
        logger.warning(
            "Trip sync unavailable",
            extra={"extra_data": {"user_id": self.session.user_id, "error": str(error)}},
        )
        self.sync_status = SyncStatus.OFFLINE

    def _on_snapshot(self, raw: dict | None) -> None:
        if not self.session.is_active:
            return

        try:
            doc = decode_document(raw)
        except ValidationError as e:
            logger.error(
                "Ignoring malformed trip document",
                extra={"extra_data": {"user_id": self.session.user_id, "error": str(e)}},
            )
            self.sync_status = SyncStatus.OFFLINE
            return

        if isinstance(doc, MultiTripDocument):
            self._apply_multi(doc)
        elif isinstance(doc, LegacyTripDocument):
            self._migrate_legacy(doc)

        self.sync_status = SyncStatus.ONLINE

    def _apply_multi(self, doc: MultiTripDocument) -> None:
        self.trips = dict(doc.trips)
        # Another writer's currentTripId must not move this repository off its trip
        if self.current_trip_id in self.trips:
            self._load_working(self.current_trip_id)
        elif doc.current_trip_id and doc.current_trip_id in self.trips:
            self._load_working(doc.current_trip_id)
        elif self.trips:
            self._load_working(next(iter(self.trips)))
        else:
            self.current_trip_id = None
            self._reset_working()

    def _migrate_legacy(self, doc: LegacyTripDocument) -> None:
        trip_id = new_trip_id("legacy")
        self.trips = {
            trip_id: TripSnapshot(
                settings=doc.settings,
                itinerary=doc.itinerary,
                expenses=doc.expenses,
                last_modified=now_millis(),
            )
        }
        self._load_working(trip_id)
        logger.info(
            "Migrated legacy trip document",
            extra={"extra_data": {"user_id": self.session.user_id, "trip_id": trip_id}},
        )
        self._persist()

    # --- Writes ---

    def _build_document(self) -> dict:
        return MultiTripDocument(
            trips=self.trips,
            current_trip_id=self.current_trip_id,
            last_modified=now_millis(),
        ).to_document()

    def _persist(self) -> bool:
        if self.session.is_guest:
            self._unflushed = True
            self.sync_status = SyncStatus.OFFLINE
            return False

        try:
            self.store.write_document(self.session.user_id, self._build_document())
        except PersistenceError as e:
            logger.warning(
                "Trip save failed",
                extra={"extra_data": {"user_id": self.session.user_id, "error": str(e)}},
            )
            self._unflushed = True
            self.sync_status = SyncStatus.OFFLINE
            return False

        self._unflushed = False
        self.sync_status = SyncStatus.ONLINE
        return True

    def save(
        self,
        settings: TripSettings | None = None,
        itinerary: list[ItineraryItem] | None = None,
        expenses: list[Expense] | None = None,
    ) -> bool:
        """Store the current trip and write the whole collection.

        Returns True when the document store accepted the write. A rejected
        write keeps the in-memory change and leaves the repository offline.
        """
        self._require_open()
        if self.current_trip_id is None:
            return False

        trip_id = self.current_trip_id
        snapshot = TripSnapshot(
            settings=settings if settings is not None else self.settings,
            itinerary=list(itinerary if itinerary is not None else self.itinerary),
            expenses=list(expenses if expenses is not None else self.expenses),
            last_modified=now_millis(),
        )
        self.trips = {**self.trips, trip_id: snapshot}
        self.settings = snapshot.settings
        self.itinerary = list(snapshot.itinerary)
        self.expenses = list(snapshot.expenses)
        return self._persist()

    def flush(self, attempts: int = 3, base_delay: float = 0.5) -> bool:
        """Retry a previously rejected write with exponential backoff."""
        self._require_open()
        if not self._unflushed:
            return True

        for attempt in range(attempts):
            if self._persist():
                logger.info(
                    "Trip changes flushed",
                    extra={"extra_data": {"user_id": self.session.user_id, "attempt": attempt + 1}},
                )
                return True
            if attempt < attempts - 1:
                self._sleep(base_delay * (2 ** attempt))
        return False

    # --- Trip lifecycle ---

    def create_new_trip(self) -> None:
        """Reset to a blank trip. Nothing is persisted until ``start_trip``."""
        self._require_open()
        self.current_trip_id = None
        self._reset_working()

    def start_trip(
        self,
        settings: TripSettings,
        itinerary: list[ItineraryItem] | None = None,
        expenses: list[Expense] | None = None,
    ) -> str:
        self._require_open()
        trip_id = new_trip_id()
        self.current_trip_id = trip_id
        self.save(
            settings=settings.model_copy(update={"is_setup": True}),
            itinerary=itinerary or [],
            expenses=expenses or [],
        )
        logger.info("Trip created", extra={"extra_data": {"user_id": self.session.user_id, "trip_id": trip_id}})
        return trip_id

    def switch_trip(self, trip_id: str) -> bool:
        self._require_open()
        if trip_id not in self.trips:
            return False
        self._load_working(trip_id)
        return True

    def delete_trip(self, trip_id: str) -> bool:
        self._require_open()
        if trip_id not in self.trips:
            return False

        self.trips = {k: v for k, v in self.trips.items() if k != trip_id}
        if self.current_trip_id == trip_id:
            if self.trips:
                self._load_working(next(iter(self.trips)))
            else:
                self.current_trip_id = None
                self._reset_working()

        self._persist()
        logger.info("Trip deleted", extra={"extra_data": {"user_id": self.session.user_id, "trip_id": trip_id}})
        return True

    # --- Settings and expenses ---

    def update_settings(self, **changes) -> TripSettings:
        """Merge ``changes`` into the current settings; raises ValidationError on bad values."""
        self._require_open()
        settings = TripSettings.model_validate({**self.settings.model_dump(), **changes})
        self.save(settings=settings)
        return settings

    def add_expense(self, amount: float, title: str, payer: str) -> Expense:
        self._require_open()
        expense = Expense(id=self.next_id(), amount=amount, title=title, payer=payer)
        self.save(expenses=[expense, *self.expenses])
        return expense

    def delete_expense(self, expense_id: int) -> bool:
        self._require_open()
        remaining = [e for e in self.expenses if e.id != expense_id]
        if len(remaining) == len(self.expenses):
            return False
        self.save(expenses=remaining)
        return True

    def balances(self) -> dict[str, int]:
        return compute_balances(self.expenses, self.settings.users)

    # --- Teardown ---

    def close(self) -> None:
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None
        self.trips = {}
        self.current_trip_id = None
        self._reset_working()
        self._unflushed = False
        self.sync_status = SyncStatus.OFFLINE
        self.session.close()
