"""Small numeric and time helpers shared by the statistics and scheduling code."""

import math
from datetime import datetime, timezone


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    """Whole-number percentage of part/total, 0 when total is 0."""
    if total <= 0:
        return 0
    return round_half_up(part / total * 100)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
