"""Normalised view of Google Calendar events.

Google returns timed events with ``dateTime`` and all-day events with
``date``. Both are turned into aware datetimes so overlap checks compare
instants: an all-day start becomes 00:00:00 of its date and an all-day end
becomes 23:59:59 of its date, in the event's time zone or the configured
calendar zone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.utils.dateparse import parse_datetime  # type: ignore

CANCELLED = "cancelled"
END_OF_DAY = time(23, 59, 59)


def _zone(name: Optional[str], fallback: str) -> ZoneInfo:
    try:
        return ZoneInfo(name or fallback)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(fallback)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_event_time(value: Optional[Mapping[str, Any]], tz: str, *, is_end: bool = False) -> Optional[datetime]:
    """Turn an event ``start``/``end`` object into an aware datetime."""
    if not value:
        return None
    zone = _zone(value.get("timeZone"), tz)

    if value.get("dateTime"):
        parsed = parse_datetime(value["dateTime"])
        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=zone)
        return parsed

    if value.get("date"):
        day = _parse_date(value["date"])
        if day is None:
            return None
        return datetime.combine(day, END_OF_DAY if is_end else time.min, tzinfo=zone)

    return None


@dataclass(frozen=True)
class ExternalEvent:
    """One event read through the calendar gateway. Never persisted."""

    id: str
    start: Optional[datetime]
    end: Optional[datetime]
    summary: str = ""
    description: str = ""
    location: str = ""
    status: str = "confirmed"
    all_day: bool = False
    html_link: str = ""
    creator_email: str = ""
    booking_id: Optional[str] = None
    # Google all-day end dates are exclusive (checkout day)
    end_date: Optional[date] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any], tz: str) -> "ExternalEvent":
        start = payload.get("start") or {}
        end = payload.get("end") or {}
        private = (payload.get("extendedProperties") or {}).get("private") or {}
        return cls(
            id=payload["id"],
            start=parse_event_time(start, tz),
            end=parse_event_time(end, tz, is_end=True),
            summary=payload.get("summary") or "",
            description=payload.get("description") or "",
            location=payload.get("location") or "",
            status=payload.get("status") or "confirmed",
            all_day="date" in start and "dateTime" not in start,
            html_link=payload.get("htmlLink") or "",
            creator_email=(payload.get("creator") or {}).get("email") or "",
            booking_id=private.get("booking_id"),
            end_date=_parse_date(end.get("date")) if "dateTime" not in end else None,
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED

    @property
    def has_times(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def booked_range(self) -> Optional[tuple[datetime, datetime]]:
        """
        Bounds a booking imported from this event should carry.

        All-day events end at 00:00 of Google's exclusive end date, like a
        chalet checkout day, rather than at the 23:59:59 used for overlaps.
        """
        if not self.has_times:
            return None
        if self.all_day and self.end_date is not None:
            end = datetime.combine(self.end_date, time.min, tzinfo=self.start.tzinfo)
            if end > self.start:
                return self.start, end
        return self.start, self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap with [start, end). Events without times never overlap."""
        if not self.has_times:
            return False
        return self.start < end and start < self.end

    def to_dict(self) -> dict:
        return {
            "kind": "external_event",
            "id": self.id,
            "summary": self.summary,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "all_day": self.all_day,
            "status": self.status,
            "html_link": self.html_link,
        }
