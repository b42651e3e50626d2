"""Field parsers for offer text: pickup hour, fare and pickup distance.

All three are total: a missing or malformed field returns None, never raises.
Only the first occurrence in the text is considered.
"""

import re

_HOUR_PATTERN = re.compile(r"(\d{1,2}):\d{2}\s?(AM|PM)", re.IGNORECASE)
_PRICE_PATTERN = re.compile(r"RM(\d+\.?\d*)")
_DISTANCE_PATTERN = re.compile(r"(\d+\.?\d*)\s?Km from you", re.IGNORECASE)


def extract_hour(text: str) -> int | None:
    """Pickup hour on a 24-hour clock from the first "H:MM AM|PM" in `text`.

    "2:15 PM" -> 14, "12:00 AM" -> 0, "12:30 PM" -> 12.
    """
    match = _HOUR_PATTERN.search(text)
    if match is None:
        return None
    hour = int(match.group(1))
    meridiem = match.group(2).upper()
    if meridiem == "PM" and hour < 12:
        hour += 12
    if meridiem == "AM" and hour == 12:
        hour = 0
    return hour


def extract_price(text: str) -> float | None:
    """Fare amount from the first "RM<number>" in `text`."""
    return _first_number(_PRICE_PATTERN, text)


def extract_distance_km(text: str) -> float | None:
    """Pickup distance from the first "<number> Km from you" in `text`."""
    return _first_number(_DISTANCE_PATTERN, text)


def _first_number(pattern: re.Pattern[str], text: str) -> float | None:
    match = pattern.search(text)
    if match is None:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None
