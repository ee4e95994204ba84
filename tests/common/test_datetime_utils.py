from __future__ import annotations

import time
from datetime import date, datetime

import pytest

from src.academic_hub.academic_hub.common.datetime_utils import day_window, parse_when, range_end
from src.academic_hub.academic_hub.core.exceptions import ValidationError


@pytest.fixture
def utc_server(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_offset_is_converted_to_server_local_time(utc_server):
    parsed = parse_when("2026-03-02T23:30:00-05:00")
    assert parsed == datetime(2026, 3, 3, 4, 30)
    assert parsed.tzinfo is None
    assert day_window(parsed.date())[0] == datetime(2026, 3, 3)


def test_zulu_suffix_is_utc(utc_server):
    assert parse_when("2026-03-02T10:00:00Z") == datetime(2026, 3, 2, 10, 0)


def test_naive_values_are_kept_as_is():
    assert parse_when("2026-03-02T23:30:00") == datetime(2026, 3, 2, 23, 30)
    assert parse_when("2026-03-02") == datetime(2026, 3, 2)
    assert parse_when(date(2026, 3, 2)) == datetime(2026, 3, 2)
    assert parse_when("") is None


def test_invalid_date():
    with pytest.raises(ValidationError, match="Invalid date"):
        parse_when("02/03/2026")


def test_range_end_covers_whole_day_for_bare_dates():
    assert range_end("2026-03-02") == datetime(2026, 3, 2, 23, 59, 59, 999000)
    assert range_end("2026-03-02T12:00:00") == datetime(2026, 3, 2, 12, 0)
