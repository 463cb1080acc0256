"""
touchpoint/stores/sqlite_store.py
SQLite-backed touchpoint store.

SCHEMA DESIGN NOTES:
- touchpoints holds one row per tracked person; id is the primary key
- channel_key is the normalized channel, UNIQUE, a second guard behind
  validation against tracking the same number twice
- touchpoint_meta stores the schema version
- last_contact_ms stored as INTEGER milliseconds (Unix epoch * 1000),
  read back as UTC-aware datetimes; callers project to local dates
- Each operation opens and closes its own connection so the store can
  be shared between the scheduler thread and request threads
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from touchpoint.errors import PersistenceError, RecordNotFoundError
from touchpoint.models.record import Category, PreferredAction, TouchpointRecord
from touchpoint.stores.base import TouchpointStore
from touchpoint.validation import normalize_channel

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


class SqliteTouchpointStore(TouchpointStore):

    def __init__(self, db_path: Path = Path("touchpoint.db")):
        self.db_path = Path(db_path)
        self._schema_ready = False

    # ── INTERNAL ─────────────────────────────────────────────

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")   # Safe concurrent reads
        if not self._schema_ready:
            try:
                _create_schema(conn)
                conn.commit()
            except sqlite3.Error:
                conn.close()
                raise
            self._schema_ready = True
            logger.info(f"Touchpoint store ready → {self.db_path}")
        return conn

    def _read(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = None
        try:
            conn = self._connect()
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite read failed: {e}")
            raise PersistenceError(f"SQLite read failed: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    def _write(self, sql: str, params: tuple) -> int:
        """Run one statement in its own transaction. Returns rowcount."""
        conn = None
        try:
            conn = self._connect()
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            logger.error(f"SQLite write failed: {e}")
            raise PersistenceError(f"SQLite write failed: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> TouchpointRecord:
        try:
            action   = PreferredAction(row["preferred_action"])
            category = Category(row["category"]) if row["category"] else None
        except ValueError as e:
            raise PersistenceError(f"Corrupt touchpoint row {row['id']}: {e}") from e
        return TouchpointRecord(
            id               = row["id"],
            name             = row["name"],
            channel          = row["channel"],
            cadence_days     = row["cadence_days"],
            last_contact_at  = _from_ms(row["last_contact_ms"]),
            preferred_action = action,
            category         = category,
        )

    # ── STORE INTERFACE ──────────────────────────────────────

    def snapshot(self) -> List[TouchpointRecord]:
        rows = self._read("SELECT * FROM touchpoints")
        return [self._row_to_record(r) for r in rows]

    def get(self, record_id: str) -> TouchpointRecord:
        rows = self._read("SELECT * FROM touchpoints WHERE id = ?", (record_id,))
        if not rows:
            raise RecordNotFoundError(record_id)
        return self._row_to_record(rows[0])

    def insert(self, record: TouchpointRecord) -> None:
        self._write("""
            INSERT INTO touchpoints
            (id, name, channel, channel_key, cadence_days,
             last_contact_ms, preferred_action, category, created_at)
            VALUES (?,?,?,?,?,?,?,?,?)
        """, (
            record.id,
            record.name,
            record.channel,
            normalize_channel(record.channel),
            record.cadence_days,
            _to_ms(record.last_contact_at),
            record.preferred_action.value,
            record.category.value if record.category else None,
            datetime.now(timezone.utc).isoformat(),
        ))
        logger.debug(f"Wrote touchpoint {record.id}")

    def reset(self, record_id: str, at: datetime) -> TouchpointRecord:
        updated = self._write(
            "UPDATE touchpoints SET last_contact_ms = ? WHERE id = ?",
            (_to_ms(at), record_id),
        )
        if not updated:
            raise RecordNotFoundError(record_id)
        logger.debug(f"Reset touchpoint {record_id}")
        return self.get(record_id)

    def delete(self, record_id: str) -> None:
        deleted = self._write("DELETE FROM touchpoints WHERE id = ?", (record_id,))
        if not deleted:
            raise RecordNotFoundError(record_id)
        logger.debug(f"Deleted touchpoint {record_id}")


# ── SCHEMA ───────────────────────────────────────────────────

def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS touchpoint_meta (
            key             TEXT PRIMARY KEY,
            value           TEXT
        );

        CREATE TABLE IF NOT EXISTS touchpoints (
            id               TEXT    PRIMARY KEY,
            name             TEXT    NOT NULL,
            channel          TEXT    NOT NULL,
            channel_key      TEXT    NOT NULL UNIQUE,
            cadence_days     INTEGER NOT NULL CHECK (cadence_days BETWEEN 1 AND 365),
            last_contact_ms  INTEGER NOT NULL,
            preferred_action TEXT    NOT NULL,
            category         TEXT,
            created_at       TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_touchpoint_category ON touchpoints(category);
    """)
    conn.execute(
        "INSERT OR IGNORE INTO touchpoint_meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
