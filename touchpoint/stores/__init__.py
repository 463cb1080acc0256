"""
touchpoint/stores: touchpoint persistence backends.
"""

from touchpoint.stores.base import TouchpointStore
from touchpoint.stores.memory_store import MemoryTouchpointStore
from touchpoint.stores.sqlite_store import SqliteTouchpointStore

__all__ = [
    "MemoryTouchpointStore",
    "SqliteTouchpointStore",
    "TouchpointStore",
]
