"""
Utilities for clock arithmetic and speed-based travel estimates.

All times are same-day "HH:MM" strings on a 24-hour clock.
"""

import re
from typing import Literal

TravelMode = Literal["walking", "driving", "cycling", "transit"]

MINUTES_PER_DAY = 24 * 60
MIN_TRAVEL_MINUTES = 5

# Average door-to-door speeds in miles per hour
MODE_SPEEDS_MPH: dict[str, float] = {
    "walking": 3,
    "cycling": 12,
    "transit": 15,
    "driving": 25,
}

# Currency units per mile
MODE_COST_PER_MILE: dict[str, float] = {
    "driving": 0.5,
    "transit": 1.5,
}

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(value + 0.5)


def parse_time_to_minutes(time_str: str) -> int:
    """
    Convert a "HH:MM" string to minutes since midnight.

    Raises:
        ValueError: if the string is not a valid 24-hour clock time
    """
    match = _TIME_PATTERN.match((time_str or "").strip())
    if not match:
        raise ValueError(f"Invalid time '{time_str}', expected HH:MM")

    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time '{time_str}', expected HH:MM")

    return hour * 60 + minute


def minutes_to_time_string(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM", wrapping at 24h."""
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes_to_time(time_str: str, minutes: int) -> str:
    """
    Add minutes to a time string.

    Args:
        time_str: Time in "HH:MM" format (e.g., "09:30", "18:05")
        minutes: Minutes to add

    Returns:
        New time string in the same format, wrapped to the next day if needed
    """
    return minutes_to_time_string(parse_time_to_minutes(time_str) + minutes)


def time_difference_minutes(start: str, end: str) -> int:
    """Signed minutes from `start` to `end` on the same day (no wraparound)."""
    return parse_time_to_minutes(end) - parse_time_to_minutes(start)


def duration_between(start: str, end: str) -> int:
    """Minutes from `start` to `end`, wrapping past midnight."""
    return time_difference_minutes(start, end) % MINUTES_PER_DAY


def estimate_travel_time(distance_miles: float, mode: TravelMode) -> int:
    """
    Estimate travel time in minutes from distance and mode.

    Args:
        distance_miles: Distance in miles
        mode: Transportation mode
            - "walking": ~3 mph
            - "cycling": ~12 mph
            - "transit": ~15 mph including waits
            - "driving": ~25 mph average city speed

    Returns:
        Travel time in minutes, never less than five
    """
    speed = MODE_SPEEDS_MPH.get(mode, MODE_SPEEDS_MPH["walking"])
    return max(MIN_TRAVEL_MINUTES, round_half_up(distance_miles / speed * 60))


def calculate_travel_cost(mode: str, distance_miles: float) -> int:
    """Estimated fare/fuel for a trip; walking and cycling are free."""
    return round_half_up(distance_miles * MODE_COST_PER_MILE.get(mode, 0.0))
