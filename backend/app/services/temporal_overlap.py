"""Fractional overlap between two date ranges."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Union

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class DateRange:
    """A half-open [start, end) range of dates or datetimes."""
    start: DateLike
    end: DateLike


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        # Compare naive and aware values on the same footing
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


def overlap(range_a: DateRange, range_b: DateRange) -> float:
    """
    Overlap of two ranges relative to the shorter one.

    A one-day event nested inside a ten-day festival scores 1.0.
    Returns 0.0 for disjoint ranges and for a zero-length shorter range.
    """
    start_a, end_a = _as_datetime(range_a.start), _as_datetime(range_a.end)
    start_b, end_b = _as_datetime(range_b.start), _as_datetime(range_b.end)

    overlap_start = max(start_a, start_b)
    overlap_end = min(end_a, end_b)
    if overlap_start > overlap_end:
        return 0.0

    shortest = min(end_a - start_a, end_b - start_b)
    if shortest.total_seconds() <= 0:
        return 0.0

    return (overlap_end - overlap_start) / shortest
