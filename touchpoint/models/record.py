"""
touchpoint/models/record.py
Shared dataclass schema. The tracker, stores, API and CLI all use
these types. Do not add logic here, data only.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PreferredAction(Enum):
    """How the person is usually reached. Closed set."""
    MESSAGE = 'message'
    CALL    = 'call'
    MEET_UP = 'meet_up'


class Category(Enum):
    """Filtering label only. Never affects ranking."""
    PERSONAL = 'personal'
    BUSINESS = 'business'


@dataclass
class TouchpointRecord:
    """One tracked person and their desired contact cadence."""
    id:               str
    name:             str
    channel:          str               # phone number or other address, opaque to the core
    cadence_days:     int               # 1..365
    last_contact_at:  datetime          # only the calendar date matters
    preferred_action: PreferredAction
    category:         Optional[Category] = None
