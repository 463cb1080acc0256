"""
tests/test_validation.py
Save-request checks: cadence bounds and presets, action aliases,
category parsing, duplicate channels.
"""

from datetime import datetime, timezone

import pytest

from touchpoint.errors import ValidationError
from touchpoint.models.record import Category, PreferredAction, TouchpointRecord
from touchpoint.validation import (
    normalize_channel,
    parse_action,
    parse_cadence,
    parse_category,
    validate_new_touchpoint,
)


class TestCadence:
    @pytest.mark.parametrize("value,expected", [
        ("daily", 1), ("Weekly", 7), (" monthly ", 30),
        (1, 1), (365, 365), ("14", 14),
    ])
    def test_accepted(self, value, expected):
        assert parse_cadence(value) == expected

    @pytest.mark.parametrize("value", [0, -3, 366, "0", "fortnightly", "", "7.5", True])
    def test_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_cadence(value)
        assert exc.value.field == "cadence_days"


class TestAction:
    @pytest.mark.parametrize("value,expected", [
        ("message", PreferredAction.MESSAGE),
        ("CALL", PreferredAction.CALL),
        ("meet up", PreferredAction.MEET_UP),
        ("Meet_Up", PreferredAction.MEET_UP),
        ("sms", PreferredAction.MESSAGE),
        (PreferredAction.CALL, PreferredAction.CALL),
    ])
    def test_accepted(self, value, expected):
        assert parse_action(value) is expected

    def test_unknown_rejected(self):
        with pytest.raises(ValidationError, match="Choose one of"):
            parse_action("email")


class TestCategory:
    def test_none_and_blank_mean_uncategorized(self):
        assert parse_category(None) is None
        assert parse_category("  ") is None

    def test_parses_case_insensitively(self):
        assert parse_category("Business") is Category.BUSINESS

    def test_unknown_rejected(self):
        with pytest.raises(ValidationError):
            parse_category("family")


class TestNewTouchpoint:
    def test_cleaned_fields(self):
        fields = validate_new_touchpoint("  Jane  ", " +1 612 555 0002 ", "weekly", "call", "personal")
        assert fields == {
            "name":             "Jane",
            "channel":          "+1 612 555 0002",
            "cadence_days":     7,
            "preferred_action": PreferredAction.CALL,
            "category":         Category.PERSONAL,
        }

    @pytest.mark.parametrize("name,channel,field", [
        ("", "+1", "name"),
        ("   ", "+1", "name"),
        ("Jane", "", "channel"),
        ("Jane", "--- ()", "channel"),
        ("Jane", " . - ", "channel"),
    ])
    def test_required_fields(self, name, channel, field):
        with pytest.raises(ValidationError) as exc:
            validate_new_touchpoint(name, channel, 7, "message")
        assert exc.value.field == field

    def test_duplicate_channel_after_normalizing(self):
        existing = TouchpointRecord(
            id="x", name="John", channel="+16125550001", cadence_days=7,
            last_contact_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            preferred_action=PreferredAction.MESSAGE,
        )
        with pytest.raises(ValidationError, match="John"):
            validate_new_touchpoint("Jane", "+1 (612) 555-0001", 7, "call", existing=[existing])

    def test_normalize_channel(self):
        assert normalize_channel("+1 (612) 555-0001") == "+16125550001"
        assert normalize_channel("612.555.0001") == "6125550001"
