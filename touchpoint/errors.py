"""
touchpoint/errors.py
Exception hierarchy. Everything the core raises on purpose derives
from TouchpointError so callers can catch one base class.
"""

from typing import Optional


class TouchpointError(Exception):
    """Base class for all touchpoint errors."""


class ValidationError(TouchpointError, ValueError):
    """Input rejected before it reached the store. No state was created."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PersistenceError(TouchpointError):
    """The store failed to apply a mutation. Caller may retry."""


class RecordNotFoundError(PersistenceError, KeyError):
    """No record with the given id exists in the store."""

    def __init__(self, record_id: str):
        super().__init__(f"Touchpoint not found: {record_id}")
        self.record_id = record_id

    def __str__(self) -> str:
        return self.args[0]


class FlowStateError(TouchpointError, RuntimeError):
    """A flow operation was called from a state that does not allow it."""
