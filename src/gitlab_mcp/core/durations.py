"""GitLab time-tracking duration helpers ("1w 2d 4h 30m" <-> seconds).

GitLab counts a month as 4 weeks, a week as 5 days and a day as 8 hours,
so ``"1d"`` is 28800 seconds, not 86400.
"""

import re
from typing import Literal

DURATION_PATTERN = r"^\s*(\d+\s*(mo|[wdhm])\s*)+$"

_DURATION_RE = re.compile(r"(\d+)\s*(mo|[wdhm])")
_UNITS = (
    ("mo", 4 * 5 * 8 * 3600),
    ("w", 5 * 8 * 3600),
    ("d", 8 * 3600),
    ("h", 3600),
    ("m", 60),
)
_UNIT_SECONDS = dict(_UNITS)

TrackingStatus = Literal["exact", "over_estimate", "under_estimate"]


def parse_duration_to_seconds(duration: str) -> int:
    """Sum every ``<n>mo``, ``<n>w``, ``<n>d``, ``<n>h`` and ``<n>m`` token.

    Spacing between tokens is optional: ``"2h 30m"`` and ``"2h30m"`` both
    give 9000. Text without a recognised token gives 0; tool inputs reject
    it up front through ``DURATION_PATTERN``.
    """
    return sum(int(value) * _UNIT_SECONDS[unit] for value, unit in _DURATION_RE.findall(duration))


def format_seconds_to_human_duration(seconds: int) -> str:
    """Format seconds as GitLab-style duration, e.g. 37800 -> ``"1d 2h 30m"``."""
    if seconds <= 0:
        return "0m"

    parts = []
    remainder = int(seconds)
    for unit, size in _UNITS:
        count, remainder = divmod(remainder, size)
        if count:
            parts.append(f"{count}{unit}")
    return " ".join(parts) or "0m"


def calculate_accuracy_percentage(estimated: int, actual: int) -> int:
    if estimated == 0 or actual == 0:
        return 0
    return round(estimated / actual * 100)


def calculate_variance_percentage(estimated: int, actual: int) -> int:
    if estimated == 0:
        return 0
    return round(abs(actual - estimated) / estimated * 100)


def get_time_tracking_status(estimated: int, actual: int) -> TrackingStatus:
    difference = actual - estimated
    if difference == 0:
        return "exact"
    return "over_estimate" if difference > 0 else "under_estimate"
