"""
Tests for schedule parsing and the signup gate.
"""

from datetime import datetime, timedelta, timezone

import pytest

from signup_api.core.config import Settings
from signup_api.services.schedule import (
    Category,
    WindowSchedule,
    category_for,
    is_open,
    load_schedule,
    parse_instant,
)

from tests.conftest import T0


def test_guest_window_bounds(schedule):
    """Closed before guest-open, open from guest-open, closed from signup-close."""
    guest_open = schedule.guest_opens_at
    close = schedule.signup_closes_at

    assert not is_open(schedule, Category.GUEST, guest_open - timedelta(microseconds=1))
    assert is_open(schedule, Category.GUEST, guest_open)
    assert is_open(schedule, Category.GUEST, close - timedelta(microseconds=1))
    assert not is_open(schedule, Category.GUEST, close)
    assert not is_open(schedule, Category.GUEST, close + timedelta(days=1))


def test_other_window_opens_later(schedule):
    between = T0 + timedelta(seconds=15)
    assert is_open(schedule, Category.GUEST, between)
    assert not is_open(schedule, Category.OTHER, between)
    assert is_open(schedule, Category.OTHER, schedule.other_opens_at)


@pytest.mark.parametrize("category", list(Category))
def test_closed_after_close_for_every_category(schedule, category):
    assert not is_open(schedule, category, schedule.signup_closes_at)


def test_missing_open_instant_keeps_gate_closed():
    schedule = WindowSchedule(
        guest_opens_at=None,
        other_opens_at=T0,
        signup_closes_at=T0 + timedelta(hours=1),
    )
    assert not is_open(schedule, Category.GUEST, T0 + timedelta(minutes=5))
    assert is_open(schedule, Category.OTHER, T0 + timedelta(minutes=5))


def test_missing_close_instant_keeps_gate_closed():
    schedule = WindowSchedule(guest_opens_at=T0, other_opens_at=T0, signup_closes_at=None)
    assert not is_open(schedule, Category.GUEST, T0 + timedelta(minutes=5))
    assert not is_open(schedule, Category.OTHER, T0 + timedelta(minutes=5))


def test_empty_schedule_is_closed():
    assert not is_open(WindowSchedule(), Category.GUEST, datetime.now(timezone.utc))


def test_parse_instant_with_offset():
    parsed = parse_instant("2026-03-01T14:00:00+02:00")
    assert parsed == T0


def test_parse_instant_naive_is_utc():
    assert parse_instant("2026-03-01T12:00:00") == T0


@pytest.mark.parametrize("value", [None, "", "   ", "next friday", "2026-13-45T99:00"])
def test_parse_instant_rejects_bad_values(value):
    assert parse_instant(value) is None


def test_load_schedule_from_settings():
    settings = Settings(
        GUEST_SIGNUP_OPENS_AT="2026-03-01T12:00:10Z",
        OTHER_SIGNUP_OPENS_AT="2026-03-01T12:00:20Z",
        SIGNUP_CLOSES_AT="not a date",
    )
    schedule = load_schedule(settings)
    assert schedule.guest_opens_at == T0 + timedelta(seconds=10)
    assert schedule.other_opens_at == T0 + timedelta(seconds=20)
    assert schedule.signup_closes_at is None
    # An unparsable close instant fails closed
    assert not is_open(schedule, Category.GUEST, T0 + timedelta(seconds=30))


def test_schedule_is_immutable(schedule):
    with pytest.raises(AttributeError):
        schedule.guest_opens_at = T0


def test_category_for_invited_flag():
    assert category_for(True) is Category.GUEST
    assert category_for(False) is Category.OTHER
