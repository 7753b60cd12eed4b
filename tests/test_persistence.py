import pytest
from sqlalchemy.exc import OperationalError

from travelflow.persistence import PersistenceError, SqlDocumentStore


def test_subscribe_delivers_current_document_then_changes(store):
    seen = []
    store.subscribe("user-1", seen.append, pytest.fail)
    store.write_document("user-1", {"trips": {}, "lastModified": 1})

    assert seen == [None, {"trips": {}, "lastModified": 1}]


def test_snapshots_are_copies(store):
    store.write_document("user-1", {"trips": {"a": {"settings": {}}}})
    seen = []
    store.subscribe("user-1", seen.append, pytest.fail)

    seen[0]["trips"]["a"]["settings"]["destination"] = "Mutated"

    assert store.read_document("user-1") == {"trips": {"a": {"settings": {}}}}


def test_listeners_are_scoped_to_user(store):
    mine, theirs = [], []
    store.subscribe("user-1", mine.append, pytest.fail)
    store.subscribe("user-2", theirs.append, pytest.fail)

    store.write_document("user-2", {"trips": {}})

    assert mine == [None]
    assert theirs == [None, {"trips": {}}]


def test_unsubscribe_stops_delivery(store):
    seen = []
    subscription = store.subscribe("user-1", seen.append, pytest.fail)
    subscription.unsubscribe()
    subscription.unsubscribe()

    store.write_document("user-1", {"trips": {}})

    assert seen == [None]
    assert store.subscriber_count("user-1") == 0


def test_failing_listener_does_not_block_others(store):
    def explode(doc):
        if doc is not None:
            raise RuntimeError("listener bug")

    seen = []
    store.subscribe("user-1", explode, pytest.fail)
    store.subscribe("user-1", seen.append, pytest.fail)

    store.write_document("user-1", {"trips": {}})

    assert seen[-1] == {"trips": {}}


def test_overwrite_replaces_whole_document(store):
    store.write_document("user-1", {"trips": {"a": {}}, "currentTripId": "a"})
    store.write_document("user-1", {"trips": {}})
    assert store.read_document("user-1") == {"trips": {}}


class BrokenSession:
    def get(self, *args):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def rollback(self):
        pass

    def close(self):
        pass


def test_write_failure_raises_persistence_error():
    store = SqlDocumentStore(session_factory=BrokenSession)
    with pytest.raises(PersistenceError):
        store.write_document("user-1", {"trips": {}})


def test_subscribe_failure_reports_error():
    store = SqlDocumentStore(session_factory=BrokenSession)
    errors, snapshots = [], []

    store.subscribe("user-1", snapshots.append, errors.append)

    assert snapshots == []
    assert isinstance(errors[0], PersistenceError)
    assert store.subscriber_count("user-1") == 0
