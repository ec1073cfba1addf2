"""
Tests for day strings, times and booking labels.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from appointment_calendar.core.errors import ParseError
from appointment_calendar.utils.dates import (
    format_day,
    format_label,
    hour_floor,
    normalize_time,
    parse_day,
    parse_label,
    parse_weekday,
)


def test_format_day_uses_english_names_without_leading_zero():
    assert format_day(date(2024, 6, 3)) == "Mon 3 June 2024"
    assert format_day(date(2023, 12, 31)) == "Sun 31 December 2023"


@pytest.mark.parametrize(
    "value",
    ["Mon 3 June 2024", "Thu 29 February 2024", "Wed 1 January 2025", "Sat 14 September 2024"],
)
def test_day_string_round_trip(value):
    assert format_day(parse_day(value)) == value


@pytest.mark.parametrize("d", [date(999, 6, 3), date(1, 1, 1), date(9999, 12, 31)])
def test_year_is_four_digits_and_round_trips(d):
    value = format_day(d)
    assert value.endswith(f" {d.year:04d}")
    assert parse_day(value) == d


@pytest.mark.parametrize(
    "value",
    [
        "Tue 3 June 2024",  # weekday does not match
        "Mon 03 June 2024",
        "Mon 3 Juny 2024",
        "Fri 30 February 2024",
        "2024-06-03",
        "",
    ],
)
def test_parse_day_rejects_invalid_strings(value):
    with pytest.raises(ParseError):
        parse_day(value)


def test_parse_label_splits_and_trims():
    assert parse_label("Mon 3 June 2024 @ 14:00") == (date(2024, 6, 3), "14:00")
    assert parse_label("Mon 3 June 2024@14:00") == (date(2024, 6, 3), "14:00")
    assert format_label(date(2024, 6, 3), "14:00") == "Mon 3 June 2024 @ 14:00"


def test_parse_label_without_separator_fails():
    with pytest.raises(ParseError):
        parse_label("Mon 3 June 2024 14:00")


def test_normalize_time():
    assert normalize_time(" 09:30 ") == "09:30"
    for bad in ("9:30", "24:00", "12:60", "noon"):
        with pytest.raises(ParseError):
            normalize_time(bad)


def test_parse_weekday_accepts_full_and_short_names():
    assert parse_weekday("Monday") == 0
    assert parse_weekday("sun") == 6
    assert parse_weekday(" SATURDAY ") == 5
    with pytest.raises(ParseError):
        parse_weekday("Funday")


def test_hour_floor():
    assert hour_floor(datetime(2024, 6, 3, 14, 59, 12, 5)) == datetime(2024, 6, 3, 14, 0)
