"""
touchpoint/stores/memory_store.py
Dict-backed store. Used by tests and by callers that persist elsewhere.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List

from touchpoint.errors import PersistenceError, RecordNotFoundError
from touchpoint.models.record import TouchpointRecord
from touchpoint.stores.base import TouchpointStore

logger = logging.getLogger(__name__)


class MemoryTouchpointStore(TouchpointStore):

    def __init__(self, records: Iterable[TouchpointRecord] = ()):
        self._lock = threading.Lock()
        self._records: Dict[str, TouchpointRecord] = {r.id: replace(r) for r in records}

    def snapshot(self) -> List[TouchpointRecord]:
        with self._lock:
            return [replace(r) for r in self._records.values()]

    def get(self, record_id: str) -> TouchpointRecord:
        with self._lock:
            if record_id not in self._records:
                raise RecordNotFoundError(record_id)
            return replace(self._records[record_id])

    def insert(self, record: TouchpointRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise PersistenceError(f"Duplicate touchpoint id: {record.id}")
            self._records[record.id] = replace(record)
        logger.debug(f"Inserted touchpoint {record.id}")

    def reset(self, record_id: str, at: datetime) -> TouchpointRecord:
        with self._lock:
            if record_id not in self._records:
                raise RecordNotFoundError(record_id)
            updated = replace(self._records[record_id], last_contact_at=at)
            self._records[record_id] = updated
        logger.debug(f"Reset touchpoint {record_id}")
        return replace(updated)

    def delete(self, record_id: str) -> None:
        with self._lock:
            if self._records.pop(record_id, None) is None:
                raise RecordNotFoundError(record_id)
        logger.debug(f"Deleted touchpoint {record_id}")
