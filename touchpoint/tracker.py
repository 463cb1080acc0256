"""
touchpoint/tracker.py
The tracker ties a store, a dispatcher and the pure urgency/ranking
functions together, and runs the two small user flows.

RESET / DISPATCH FLOW:
  IDLE ─invoke_action─▶ ACTION_PENDING ─(dispatch)─▶ CONFIRM_PENDING
  CONFIRM_PENDING ─confirm_reset─▶ IDLE   (last_contact_at = now)
  CONFIRM_PENDING ─cancel────────▶ IDLE   (no mutation)
  MESSAGE and CALL dispatch fire-and-forget; MEET_UP skips dispatch.
  The reset prompt is offered after every action.

DELETE FLOW:
  IDLE ─request_delete─▶ DELETE_PENDING ─confirm_delete─▶ IDLE
                                        ─cancel────────▶ IDLE

LOCAL VIEW:
  The tracker keeps a dict view of the last snapshot. Mutations land
  in the view first; if the store reports PersistenceError the entry
  is put back and the error re-raised, so the view never claims a
  change the store rejected. A failed confirm_* leaves the flow in its
  pending state so the caller can retry or cancel. Every ranking pass
  re-pulls a fresh snapshot.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from touchpoint.dispatch.base import ActionDispatcher
from touchpoint.dispatch.uri_dispatcher import UriDispatcher
from touchpoint.errors import FlowStateError, PersistenceError, RecordNotFoundError
from touchpoint.models.record import Category, PreferredAction, TouchpointRecord
from touchpoint.ranking import RankedTouchpoint, rank, ranked_view, summarize
from touchpoint.stores.base import TouchpointStore
from touchpoint.validation import validate_new_touchpoint

logger = logging.getLogger(__name__)

RefreshListener = Callable[[], None]


class FlowState(Enum):
    IDLE            = 'idle'
    ACTION_PENDING  = 'action_pending'
    CONFIRM_PENDING = 'confirm_pending'
    DELETE_PENDING  = 'delete_pending'


class TouchpointTracker:
    """
    Usage:
        tracker = TouchpointTracker(SqliteTouchpointStore(Path("touchpoint.db")))
        tracker.create("Jane Smith", "+16125550002", "weekly", "call")
        for entry in tracker.ranked_view():
            print(entry.record.name, entry.status.label)

        record = tracker.invoke_action(entry.record.id)   # dials
        tracker.confirm_reset()                           # or tracker.cancel()
    """

    def __init__(
        self,
        store:      TouchpointStore,
        dispatcher: Optional[ActionDispatcher]       = None,
        clock:      Optional[Callable[[], datetime]] = None,
        tz:         Optional[tzinfo]                 = None,
    ):
        self.store      = store
        self.dispatcher = dispatcher or UriDispatcher()
        self.tz         = tz
        self._clock     = clock or (lambda: datetime.now(tz))

        self._view: Dict[str, TouchpointRecord] = {}
        self._listeners: List[RefreshListener] = []
        self._state   = FlowState.IDLE
        self._pending: Optional[TouchpointRecord] = None

    def now(self) -> datetime:
        return self._clock()

    # ── REFRESH FAN-OUT ──────────────────────────────────────

    def add_listener(self, listener: RefreshListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: RefreshListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.error("Refresh listener failed", exc_info=True)

    # ── READ ─────────────────────────────────────────────────

    def refresh(self) -> List[TouchpointRecord]:
        """Pull a fresh snapshot from the store into the local view."""
        records = self.store.snapshot()
        self._view = {r.id: r for r in records}
        return records

    def records(self) -> List[TouchpointRecord]:
        """The local view as of the last refresh or mutation."""
        return list(self._view.values())

    def get(self, record_id: str) -> TouchpointRecord:
        if record_id in self._view:
            return self._view[record_id]
        record = self.store.get(record_id)
        self._view[record.id] = record
        return record

    def ranked(
        self,
        now:      Optional[datetime] = None,
        category: Optional[Category] = None,
    ) -> List[TouchpointRecord]:
        return rank(self.refresh(), now or self.now(), category, self.tz)

    def ranked_view(
        self,
        now:      Optional[datetime] = None,
        category: Optional[Category] = None,
    ) -> List[RankedTouchpoint]:
        return ranked_view(self.refresh(), now or self.now(), category, self.tz)

    def summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return summarize(self.refresh(), now or self.now(), self.tz)

    # ── MUTATIONS ────────────────────────────────────────────

    def create(
        self,
        name:     str,
        channel:  str,
        cadence:  Union[str, int],
        action:   Union[str, PreferredAction],
        category: Union[str, Category, None] = None,
        now:      Optional[datetime]         = None,
    ) -> TouchpointRecord:
        """
        Validate and insert a new touchpoint. last_contact_at starts at now.
        Raises ValidationError before the store is touched.
        """
        fields = validate_new_touchpoint(
            name, channel, cadence, action, category,
            existing=self.store.snapshot(),
        )
        record = TouchpointRecord(
            id              = uuid.uuid4().hex,
            last_contact_at = now or self.now(),
            **fields,
        )

        self._view[record.id] = record
        try:
            self.store.insert(record)
        except PersistenceError:
            self._view.pop(record.id, None)
            raise

        logger.info(f"Touchpoint created: {record.id} | cadence={record.cadence_days}d")
        self._notify()
        return record

    def reset(self, record_id: str, now: Optional[datetime] = None) -> TouchpointRecord:
        """Mark contact made: last_contact_at = now."""
        at = now or self.now()
        previous = self._view.get(record_id)
        if previous is not None:
            self._view[record_id] = replace(previous, last_contact_at=at)

        try:
            updated = self.store.reset(record_id, at)
        except RecordNotFoundError:
            self._view.pop(record_id, None)
            raise
        except PersistenceError:
            if previous is not None:
                self._view[record_id] = previous
            raise

        self._view[record_id] = updated
        logger.info(f"Touchpoint reset: {record_id}")
        self._notify()
        return updated

    def delete(self, record_id: str) -> None:
        previous = self._view.pop(record_id, None)
        try:
            self.store.delete(record_id)
        except PersistenceError as e:
            if previous is not None and not isinstance(e, RecordNotFoundError):
                self._view[record_id] = previous
            raise

        logger.info(f"Touchpoint deleted: {record_id}")
        self._notify()

    # ── FLOWS ────────────────────────────────────────────────

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def pending(self) -> Optional[TouchpointRecord]:
        return self._pending

    def _require(self, expected: FlowState, operation: str) -> None:
        if self._state is not expected:
            raise FlowStateError(
                f"{operation} needs state {expected.value}, current state is {self._state.value}"
            )

    def _to_idle(self) -> None:
        self._state   = FlowState.IDLE
        self._pending = None

    def invoke_action(self, record_id: str) -> TouchpointRecord:
        """
        Run the record's preferred action, then move to CONFIRM_PENDING.
        Returns the record the reset prompt is about.
        """
        self._require(FlowState.IDLE, "invoke_action")
        record = self.get(record_id)

        self._state   = FlowState.ACTION_PENDING
        self._pending = record

        action = record.preferred_action
        if action in (PreferredAction.MESSAGE, PreferredAction.CALL):
            try:
                self.dispatcher.dispatch(record.channel, action)
            except Exception:
                # best effort; the prompt is still offered
                logger.warning(f"Dispatcher raised for {record_id}", exc_info=True)
        elif action is PreferredAction.MEET_UP:
            logger.debug(f"Meet-up selected for {record_id}, nothing to dispatch")
        else:
            self._to_idle()
            raise ValueError(f"Unhandled action: {action}")

        self._state = FlowState.CONFIRM_PENDING
        return record

    def confirm_reset(self, now: Optional[datetime] = None) -> TouchpointRecord:
        self._require(FlowState.CONFIRM_PENDING, "confirm_reset")
        updated = self.reset(self._pending.id, now)
        self._to_idle()
        return updated

    def request_delete(self, record_id: str) -> TouchpointRecord:
        self._require(FlowState.IDLE, "request_delete")
        record = self.get(record_id)
        self._state   = FlowState.DELETE_PENDING
        self._pending = record
        return record

    def confirm_delete(self) -> None:
        self._require(FlowState.DELETE_PENDING, "confirm_delete")
        self.delete(self._pending.id)
        self._to_idle()

    def cancel(self) -> None:
        """Abandon whatever is pending. No mutation. Safe from IDLE."""
        if self._state is not FlowState.IDLE:
            logger.debug(f"Flow cancelled from {self._state.value}")
        self._to_idle()
