"""Per-user document store with change subscriptions.

Each user owns exactly one JSON document. Writers replace the whole
document; every live subscriber for that user then receives the new
document, including the subscriber that issued the write.
"""

import copy
import logging
import threading
from collections import defaultdict
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from travelflow.database import SessionLocal
from travelflow.models import UserDocument

logger = logging.getLogger("travelflow")

SnapshotCallback = Callable[[dict | None], None]
ErrorCallback = Callable[[Exception], None]


class PersistenceError(Exception):
    """A document read or write was rejected by the backing store."""


class Subscription:
    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._unsubscribe()


class DocumentStore(Protocol):
    def subscribe(
        self, user_id: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Subscription: ...

    def write_document(self, user_id: str, doc: dict) -> None: ...


class _Listener:
    def __init__(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.on_snapshot = on_snapshot
        self.on_error = on_error


class SqlDocumentStore:
    """DocumentStore backed by the ``user_documents`` table."""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory
        self._listeners: dict[str, list[_Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def read_document(self, user_id: str) -> dict | None:
        db = self._session_factory()
        try:
            row = db.get(UserDocument, user_id)
            return copy.deepcopy(row.document) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def subscribe(self, user_id: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Subscription:
        listener = _Listener(on_snapshot, on_error)
        with self._lock:
            self._listeners[user_id].append(listener)

        def _remove():
            with self._lock:
                listeners = self._listeners.get(user_id, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(user_id, None)

        subscription = Subscription(_remove)

        try:
            doc = self.read_document(user_id)
        except PersistenceError as e:
            logger.warning("Document subscription failed", extra={"extra_data": {"user_id": user_id, "error": str(e)}})
            subscription.unsubscribe()
            on_error(e)
            return subscription

        on_snapshot(doc)
        return subscription

    def write_document(self, user_id: str, doc: dict) -> None:
        db = self._session_factory()
        try:
            row = db.get(UserDocument, user_id)
            if row:
                row.document = copy.deepcopy(doc)
                row.revision += 1
            else:
                db.add(UserDocument(user_id=user_id, document=copy.deepcopy(doc)))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

        self._notify(user_id, doc)

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(user_id, []))

    def _notify(self, user_id: str, doc: dict) -> None:
        with self._lock:
            listeners = list(self._listeners.get(user_id, []))
        for listener in listeners:
            try:
                listener.on_snapshot(copy.deepcopy(doc))
            except Exception:
                logger.exception("Snapshot listener failed", extra={"extra_data": {"user_id": user_id}})
