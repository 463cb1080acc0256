"""
touchpoint/ranking.py
Ordering of a touchpoint snapshot by urgency.

ORDER:
  Primary:   urgency_days descending (most overdue first)
  Tiebreak:  id ascending
Category filter runs BEFORE ordering. Inputs are never mutated.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from touchpoint.models.record import Category, TouchpointRecord
from touchpoint.urgency import Severity, Status, classify, severity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedTouchpoint:
    """A record plus everything presentation needs to draw it."""
    record:       TouchpointRecord
    urgency_days: int
    status:       Status
    severity:     Severity


def ranked_view(
    records:  Iterable[TouchpointRecord],
    now:      datetime,
    category: Optional[Category] = None,
    tz:       Optional[tzinfo]   = None,
) -> List[RankedTouchpoint]:
    entries: List[RankedTouchpoint] = []
    for record in records:
        if category is not None and record.category is not category:
            continue
        urgency_days, status = classify(record.cadence_days, record.last_contact_at, now, tz)
        entries.append(RankedTouchpoint(
            record       = record,
            urgency_days = urgency_days,
            status       = status,
            severity     = severity(urgency_days),
        ))

    entries.sort(key=lambda e: (-e.urgency_days, e.record.id))
    return entries


def rank(
    records:  Iterable[TouchpointRecord],
    now:      datetime,
    category: Optional[Category] = None,
    tz:       Optional[tzinfo]   = None,
) -> List[TouchpointRecord]:
    """Records ordered most-urgent first. See module docstring for the key."""
    return [e.record for e in ranked_view(records, now, category, tz)]


def summarize(
    records: Iterable[TouchpointRecord],
    now:     datetime,
    tz:      Optional[tzinfo] = None,
) -> Dict[str, Any]:
    """Counts per severity and per category, plus the single most urgent id."""
    view = ranked_view(records, now, tz=tz)
    by_severity = Counter(e.severity.value for e in view)
    by_category = Counter(
        e.record.category.value if e.record.category else 'uncategorized'
        for e in view
    )
    summary = {
        "total":       len(view),
        "overdue":     by_severity.get(Severity.OVERDUE.value, 0),
        "due_soon":    by_severity.get(Severity.DUE_SOON.value, 0),
        "on_track":    by_severity.get(Severity.ON_TRACK.value, 0),
        "by_category": dict(sorted(by_category.items())),
        "most_urgent": view[0].record.id if view else None,
    }
    logger.debug(f"Summary built: {summary}")
    return summary
