"""
touchpoint/stores/base.py
Abstract base class for touchpoint stores.
To add a new backend: subclass TouchpointStore and implement every method.

The store is the only owner of record identity and lifetime. Mutations
are serialized by the store; the core never locks over records and
only ever works on a snapshot.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from touchpoint.models.record import TouchpointRecord


class TouchpointStore(ABC):
    """
    All stores implement this interface.
    Failures raise PersistenceError; unknown ids raise RecordNotFoundError.
    A method that returns has been applied; there is no silent failure.
    """

    @abstractmethod
    def snapshot(self) -> List[TouchpointRecord]:
        """Independent copies of every record. Order is unspecified."""
        ...

    @abstractmethod
    def get(self, record_id: str) -> TouchpointRecord:
        ...

    @abstractmethod
    def insert(self, record: TouchpointRecord) -> None:
        ...

    @abstractmethod
    def reset(self, record_id: str, at: datetime) -> TouchpointRecord:
        """Set last_contact_at = at. Returns the updated record."""
        ...

    @abstractmethod
    def delete(self, record_id: str) -> None:
        ...

    def close(self) -> None:
        """Release any held resources. Default: nothing to release."""
