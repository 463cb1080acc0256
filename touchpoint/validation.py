"""
touchpoint/validation.py
Input checks for new touchpoints. Everything here runs BEFORE the
store is touched, so a rejected save never leaves partial state.

RULES:
  - name and channel non-empty after strip
  - cadence an int in [MIN_CADENCE_DAYS, MAX_CADENCE_DAYS]
  - action / category one of the closed enums
  - channel not already tracked (compared after normalize_channel)
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Union

from touchpoint.errors import ValidationError
from touchpoint.models.record import Category, PreferredAction, TouchpointRecord

MIN_CADENCE_DAYS = 1
MAX_CADENCE_DAYS = 365

# Picker presets from the mobile app. "custom" means a number is given.
CADENCE_PRESETS = {
    'daily':   1,
    'weekly':  7,
    'monthly': 30,
}

# Legacy labels stored by earlier app builds
_ACTION_ALIASES = {
    'text':    PreferredAction.MESSAGE,
    'sms':     PreferredAction.MESSAGE,
    'meet up': PreferredAction.MEET_UP,
    'meetup':  PreferredAction.MEET_UP,
}

_CHANNEL_STRIP = re.compile(r'[\s\-().]')


def normalize_channel(channel: str) -> str:
    """'+1 (612) 555-0001' → '+16125550001'. Non-phone channels just lose spaces."""
    return _CHANNEL_STRIP.sub('', channel or '')


def parse_cadence(value: Union[str, int]) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Cadence must be a whole number of days, got {value!r}", 'cadence_days')
    if isinstance(value, int):
        days = value
    else:
        text = str(value).strip().lower()
        if text in CADENCE_PRESETS:
            days = CADENCE_PRESETS[text]
        else:
            try:
                days = int(text)
            except ValueError:
                raise ValidationError(
                    f"Cadence must be daily, weekly, monthly or a number of days, got {value!r}",
                    'cadence_days',
                ) from None

    if not MIN_CADENCE_DAYS <= days <= MAX_CADENCE_DAYS:
        raise ValidationError(
            f"Cadence must be between {MIN_CADENCE_DAYS} and {MAX_CADENCE_DAYS} days, got {days}",
            'cadence_days',
        )
    return days


def parse_action(value: Union[str, PreferredAction]) -> PreferredAction:
    if isinstance(value, PreferredAction):
        return value
    key = (value or '').strip().lower()
    if key in _ACTION_ALIASES:
        return _ACTION_ALIASES[key]
    try:
        return PreferredAction(key.replace(' ', '_'))
    except ValueError:
        choices = ', '.join(a.value for a in PreferredAction)
        raise ValidationError(f"Unknown action {value!r}. Choose one of: {choices}", 'preferred_action') from None


def parse_category(value: Union[str, Category, None]) -> Optional[Category]:
    if value is None or isinstance(value, Category):
        return value
    key = value.strip().lower()
    if not key:
        return None
    try:
        return Category(key)
    except ValueError:
        choices = ', '.join(c.value for c in Category)
        raise ValidationError(f"Unknown category {value!r}. Choose one of: {choices}", 'category') from None


def validate_new_touchpoint(
    name:     str,
    channel:  str,
    cadence:  Union[str, int],
    action:   Union[str, PreferredAction],
    category: Union[str, Category, None] = None,
    existing: Iterable[TouchpointRecord] = (),
) -> dict:
    """
    Check a save request. Returns the cleaned fields as a dict ready for
    TouchpointRecord(**fields, id=..., last_contact_at=...).
    Raises ValidationError on the first failing rule.
    """
    name    = (name or '').strip()
    channel = (channel or '').strip()
    if not name:
        raise ValidationError("Name is required", 'name')
    if not normalize_channel(channel):
        raise ValidationError("Channel is required", 'channel')

    cleaned = {
        'name':             name,
        'channel':          channel,
        'cadence_days':     parse_cadence(cadence),
        'preferred_action': parse_action(action),
        'category':         parse_category(category),
    }

    key = normalize_channel(channel)
    for record in existing:
        if normalize_channel(record.channel) == key:
            raise ValidationError(f"Channel already tracked by {record.name!r}", 'channel')
    return cleaned
