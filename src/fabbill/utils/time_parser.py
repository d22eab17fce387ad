"""Time-of-day parsing utilities."""

import re
from datetime import time
from typing import Optional

from dateutil import parser as date_parser

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")

PLACEHOLDER_TIME = "00:00"


def parse_time_of_day(value: Optional[str]) -> Optional[time]:
    """Parse a time-of-day string.

    Accepts "HH:MM", "HH:MM:SS" and full ISO date-time strings (only the
    time part is kept).

    Args:
        value: Time string

    Returns:
        time object, or None if the value is missing or invalid
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    match = _HHMM.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        second = int(match.group(3) or 0)
        if hour > 23 or minute > 59 or second > 59:
            return None
        return time(hour, minute, second)

    if "T" not in text and " " not in text:
        return None
    try:
        return date_parser.isoparse(text).time().replace(tzinfo=None, microsecond=0)
    except (ValueError, OverflowError):
        return None


def normalize_time(value: Optional[str]) -> str:
    """Return the value as "HH:MM", or the "00:00" placeholder if invalid."""
    parsed = parse_time_of_day(value)
    if parsed is None:
        return PLACEHOLDER_TIME
    return parsed.strftime("%H:%M")


def is_valid_time(value: Optional[str]) -> bool:
    """Check whether a string is a usable time of day."""
    return parse_time_of_day(value) is not None


def minutes_since_midnight(value: time) -> float:
    """Convert a time of day to minutes since midnight."""
    return value.hour * 60 + value.minute + value.second / 60
