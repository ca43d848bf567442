"""
Value Objects

Immutable objects that represent concepts by their values.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Union
from zoneinfo import ZoneInfo

from .base import ValueObject
from .errors import InvalidRange

Instant = Union[date, datetime]


def as_instant(value: Instant, tz: Union[str, tzinfo]) -> datetime:
    """
    Normalise a date or datetime to an aware datetime

    Plain dates mean midnight in ``tz``. Naive datetimes are read as wall
    clock time in ``tz``. Aware datetimes are returned unchanged.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=zone)
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=zone)
    return value


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Half-open time interval [start, end)

    Both bounds are timezone aware instants. A range that ends exactly when
    another starts does not overlap it, so back-to-back bookings are fine.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidRange("Start and end must carry a timezone.")
        if self.start >= self.end:
            raise InvalidRange(f"Start ({self.start.isoformat()}) must be before end ({self.end.isoformat()}).")

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """
        Examples:
            - [10:00, 12:00) overlaps [11:00, 13:00) -> True
            - [10:00, 12:00) overlaps [12:00, 14:00) -> False (adjacent)
        """
        return self.start < end and start < self.end

    def overlaps_with(self, other: 'TimeRange') -> bool:
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check overlap with another TimeRange")
        return self.overlaps(other.start, other.end)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"TimeRange({self.start.isoformat()}, {self.end.isoformat()})"
