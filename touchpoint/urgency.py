"""
touchpoint/urgency.py
Urgency calculator. Pure functions only: no I/O, no clock reads.

    urgency_days = days_elapsed(last_contact_at, now) - cadence_days

days_elapsed counts CALENDAR DATES, not 24h periods: a contact made at
23:00 and checked at 01:00 the next morning is 1 day old. Both instants
are projected into one zone before taking .date():
  - tz if given
  - else now's own tzinfo
  - else system local time (naive datetimes are local wall time)

SEVERITY BUCKETS (3-tier, single scheme):
  OVERDUE   urgency_days > 0
  DUE_SOON  urgency_days in (-1, 0)   due today or tomorrow
  ON_TRACK  urgency_days < -1
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import NamedTuple, Optional


class StatusKind(Enum):
    OVERDUE   = 'overdue'
    DUE_TODAY = 'due_today'
    DUE_IN    = 'due_in'


class Severity(Enum):
    ON_TRACK = 'on_track'
    DUE_SOON = 'due_soon'
    OVERDUE  = 'overdue'


@dataclass(frozen=True)
class Status:
    """
    Tagged status. `days` is the overdue count for OVERDUE, the days
    remaining for DUE_IN, and 0 for DUE_TODAY.
    """
    kind: StatusKind
    days: int = 0

    @property
    def label(self) -> str:
        if self.kind is StatusKind.OVERDUE:
            unit = 'day' if self.days == 1 else 'days'
            return f"Overdue by {self.days} {unit}"
        if self.kind is StatusKind.DUE_TODAY:
            return "Due today"
        if self.kind is StatusKind.DUE_IN:
            if self.days == 1:
                return "Due tomorrow"
            return f"Due in {self.days} days"
        raise ValueError(f"Unhandled status kind: {self.kind}")


class Urgency(NamedTuple):
    urgency_days: int
    status:       Status


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of `moment` in `tz` (system local when tz is None)."""
    if tz is None:
        if moment.tzinfo is None:
            return moment.date()
        return moment.astimezone().date()
    return moment.astimezone(tz).date()


def calendar_days_between(
    start: datetime,
    end:   datetime,
    tz:    Optional[tzinfo] = None,
) -> int:
    """Whole calendar dates from start to end. Negative if start is later."""
    zone = tz or end.tzinfo
    return (local_date(end, zone) - local_date(start, zone)).days


def classify(
    cadence_days:    int,
    last_contact_at: datetime,
    now:             datetime,
    tz:              Optional[tzinfo] = None,
) -> Urgency:
    """
    Map (cadence, last contact, now) to (urgency_days, status).

    Examples:
        cadence 7, last contact 10 days ago -> (3,  Overdue by 3 days)
        cadence 7, last contact 5 days ago  -> (-2, Due in 2 days)
        cadence 1, last contact 1 day ago   -> (0,  Due today)
    """
    if cadence_days < 1:
        raise ValueError(f"cadence_days must be >= 1, got {cadence_days}")

    urgency_days = calendar_days_between(last_contact_at, now, tz) - cadence_days

    if urgency_days > 0:
        status = Status(StatusKind.OVERDUE, urgency_days)
    elif urgency_days == 0:
        status = Status(StatusKind.DUE_TODAY)
    else:
        status = Status(StatusKind.DUE_IN, -urgency_days)
    return Urgency(urgency_days, status)


def severity(urgency_days: int) -> Severity:
    if urgency_days > 0:
        return Severity.OVERDUE
    if urgency_days >= -1:
        return Severity.DUE_SOON
    return Severity.ON_TRACK
