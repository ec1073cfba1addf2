"""Day strings, times of day and booking labels.

Day strings look like ``"Mon 3 June 2024"``. Names are always English,
independent of the process locale.
"""

import re
from datetime import date, datetime

from appointment_calendar.core.errors import ParseError

WEEKDAY_ABBRS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

LABEL_SEPARATOR = "@"

_DAY_RE = re.compile(r"^([A-Z][a-z]{2}) ([1-9]\d?) ([A-Z][a-z]+) (\d{4})$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def format_day(d: date) -> str:
    return f"{WEEKDAY_ABBRS[d.weekday()]} {d.day} {MONTH_NAMES[d.month - 1]} {d.year:04d}"


def parse_day(value: str) -> date:
    match = _DAY_RE.match(value.strip())
    if not match:
        raise ParseError(f"Invalid day string: {value!r}")
    weekday, day, month, year = match.groups()
    if month not in MONTH_NAMES:
        raise ParseError(f"Unknown month in day string: {value!r}")
    try:
        d = date(int(year), MONTH_NAMES.index(month) + 1, int(day))
    except ValueError as e:
        raise ParseError(f"Invalid date {value!r}: {e}") from e
    if WEEKDAY_ABBRS[d.weekday()] != weekday:
        raise ParseError(f"Weekday does not match date in {value!r}")
    return d


def normalize_time(value: str) -> str:
    """Validate an ``HH:MM`` string and return it stripped."""
    value = value.strip()
    if not _TIME_RE.match(value):
        raise ParseError(f"Invalid time: {value!r}")
    return value


def hour_floor(dt: datetime) -> datetime:
    return dt.replace(minute=0, second=0, microsecond=0)


def format_label(d: date, slot_time: str) -> str:
    return f"{format_day(d)} {LABEL_SEPARATOR} {slot_time}"


def parse_label(label: str) -> tuple[date, str]:
    """Split ``"<day string> @ <HH:MM>"`` into its date and time."""
    if LABEL_SEPARATOR not in label:
        raise ParseError(f"Missing '{LABEL_SEPARATOR}' in booking label: {label!r}")
    day_part, _, time_part = label.partition(LABEL_SEPARATOR)
    return parse_day(day_part), normalize_time(time_part)


def parse_weekday(value: str) -> int:
    """Full or three-letter English weekday name, case-insensitive; Monday is 0."""
    key = value.strip().lower()
    for i, (abbr, name) in enumerate(zip(WEEKDAY_ABBRS, WEEKDAY_NAMES)):
        if key in (abbr.lower(), name.lower()):
            return i
    raise ParseError(f"Unknown weekday: {value!r}")
