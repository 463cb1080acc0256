"""
tests/test_stores.py
SQLite and in-memory stores behind the TouchpointStore interface.
"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from touchpoint.errors import PersistenceError, RecordNotFoundError
from touchpoint.models.record import Category, PreferredAction, TouchpointRecord
from touchpoint.stores.memory_store import MemoryTouchpointStore
from touchpoint.stores.sqlite_store import SqliteTouchpointStore

T0 = datetime(2025, 5, 20, 8, 30, tzinfo=timezone.utc)


def _record(record_id="a1", channel="+16125550001", **overrides) -> TouchpointRecord:
    fields = dict(
        id               = record_id,
        name             = "John Doe",
        channel          = channel,
        cadence_days     = 7,
        last_contact_at  = T0,
        preferred_action = PreferredAction.CALL,
        category         = Category.BUSINESS,
    )
    fields.update(overrides)
    return TouchpointRecord(**fields)


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    if request.param == "sqlite":
        return SqliteTouchpointStore(tmp_path / "touchpoint.db")
    return MemoryTouchpointStore()


# ── SHARED CONTRACT ──────────────────────────────────────────

class TestStoreContract:
    def test_insert_then_get(self, store):
        record = _record()
        store.insert(record)
        assert store.get("a1") == record

    def test_snapshot_lists_everything(self, store):
        store.insert(_record("a1", "+1001"))
        store.insert(_record("b2", "+1002", category=None))
        assert sorted(r.id for r in store.snapshot()) == ["a1", "b2"]

    def test_reset_updates_last_contact(self, store):
        store.insert(_record())
        later = T0 + timedelta(days=3)
        updated = store.reset("a1", later)
        assert updated.last_contact_at == later
        assert store.get("a1").last_contact_at == later

    def test_delete_removes(self, store):
        store.insert(_record())
        store.delete("a1")
        assert store.snapshot() == []

    @pytest.mark.parametrize("op", ["get", "delete"])
    def test_missing_id_raises_not_found(self, store, op):
        with pytest.raises(RecordNotFoundError) as exc:
            getattr(store, op)("ghost")
        assert exc.value.record_id == "ghost"

    def test_reset_missing_raises_not_found(self, store):
        with pytest.raises(RecordNotFoundError):
            store.reset("ghost", T0)

    def test_not_found_is_a_persistence_error(self, store):
        with pytest.raises(PersistenceError):
            store.get("ghost")

    def test_duplicate_id_rejected(self, store):
        store.insert(_record("a1", "+1001"))
        with pytest.raises(PersistenceError):
            store.insert(_record("a1", "+1002"))


# ── SQLITE ───────────────────────────────────────────────────

class TestSqliteStore:
    def test_db_created_lazily(self, tmp_path):
        path  = tmp_path / "touchpoint.db"
        store = SqliteTouchpointStore(path)
        assert not path.exists()
        store.snapshot()
        assert path.exists()

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "touchpoint.db"
        SqliteTouchpointStore(path).insert(_record())
        assert SqliteTouchpointStore(path).get("a1").name == "John Doe"

    def test_timestamps_read_back_as_utc(self, tmp_path):
        minus_six = timezone(timedelta(hours=-6))
        local = datetime(2025, 5, 20, 2, 30, tzinfo=minus_six)
        store = SqliteTouchpointStore(tmp_path / "touchpoint.db")
        store.insert(_record(last_contact_at=local))
        stored = store.get("a1").last_contact_at
        assert stored == local
        assert stored.utcoffset() == timedelta(0)

    def test_same_channel_rejected_by_schema(self, tmp_path):
        store = SqliteTouchpointStore(tmp_path / "touchpoint.db")
        store.insert(_record("a1", "+1 612 555 0001"))
        with pytest.raises(PersistenceError):
            store.insert(_record("b2", "+1-612-555-0001"))

    def test_cadence_out_of_range_rejected_by_schema(self, tmp_path):
        store = SqliteTouchpointStore(tmp_path / "touchpoint.db")
        with pytest.raises(PersistenceError):
            store.insert(_record(cadence_days=0))
        assert store.snapshot() == []

    def test_schema_version_recorded(self, tmp_path):
        path = tmp_path / "touchpoint.db"
        SqliteTouchpointStore(path).snapshot()
        conn = sqlite3.connect(str(path))
        try:
            row = conn.execute(
                "SELECT value FROM touchpoint_meta WHERE key = 'schema_version'"
            ).fetchone()
        finally:
            conn.close()
        assert row[0] == "1.0"

    def test_corrupt_action_raises_persistence_error(self, tmp_path):
        path  = tmp_path / "touchpoint.db"
        store = SqliteTouchpointStore(path)
        store.insert(_record())
        conn = sqlite3.connect(str(path))
        conn.execute("UPDATE touchpoints SET preferred_action = 'carrier_pigeon'")
        conn.commit()
        conn.close()
        with pytest.raises(PersistenceError):
            store.snapshot()

    def test_unopenable_path_raises_persistence_error(self, tmp_path):
        store = SqliteTouchpointStore(tmp_path / "missing" / "dir" / "touchpoint.db")
        with pytest.raises(PersistenceError):
            store.snapshot()


# ── MEMORY ───────────────────────────────────────────────────

class TestMemoryStore:
    def test_snapshot_returns_copies(self):
        store = MemoryTouchpointStore([_record()])
        copy = store.snapshot()[0]
        copy.name = "Changed"
        assert store.get("a1").name == "John Doe"

    def test_seeded_records_are_copied(self):
        original = _record()
        store = MemoryTouchpointStore([original])
        original.cadence_days = 99
        assert store.get("a1").cadence_days == 7
