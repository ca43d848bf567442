"""Mirror bookings into the resource's Google Calendar.

Chalet stays become all-day events (Google's end date is exclusive, which
matches the checkout day); guide trips become timed events with reminders.
Every mirrored event carries the booking id in its private extended
properties so reconciliation can recognise it.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from django.utils import timezone  # type: ignore

from apps.resources.models import Resource

from .models import Booking

logger = logging.getLogger(__name__)

MIRROR_SOURCE = "outfitter_booking_website"


def _local(value: datetime, zone: ZoneInfo) -> datetime:
    return value.astimezone(zone)


def event_title(booking: Booking) -> str:
    if booking.resource.kind == Resource.Kind.CHALET:
        return f"{booking.resource.name} - {booking.customer_name}"
    if booking.trip_type:
        return f"{booking.trip_type} - {booking.customer_name}"
    return booking.customer_name


def event_description(booking: Booking) -> str:
    lines = [
        f"Réservation par {booking.customer_name}",
        f"Booking ID: {booking.pk}",
        f"Status: {booking.get_status_display()}{' (paid)' if booking.is_paid else ''}",
    ]
    if booking.customer_email:
        lines.append(f"Email: {booking.customer_email}")
    if booking.customer_phone:
        lines.append(f"Phone: {booking.customer_phone}")
    if booking.resource.kind == Resource.Kind.GUIDE and booking.number_of_people:
        lines.append(f"People: {booking.number_of_people}")
    if booking.notes:
        lines.append("")
        lines.append(f"Notes: {booking.notes}")
    return "\n".join(lines)


def event_times(booking: Booking, time_zone: str) -> tuple[dict, dict]:
    zone = ZoneInfo(time_zone)
    if booking.resource.kind == Resource.Kind.CHALET:
        start_day = _local(booking.start, zone).date()
        local_end = _local(booking.end, zone)
        end_day = local_end.date() if local_end.time() == time.min else local_end.date() + timedelta(days=1)
        if end_day <= start_day:
            end_day = start_day + timedelta(days=1)
        return {"date": start_day.isoformat()}, {"date": end_day.isoformat()}
    return (
        {"dateTime": _local(booking.start, zone).isoformat(), "timeZone": time_zone},
        {"dateTime": _local(booking.end, zone).isoformat(), "timeZone": time_zone},
    )


def event_changes(booking: Booking, time_zone: str) -> dict:
    """The event fields that follow the booking after creation."""
    start, end = event_times(booking, time_zone)
    return {
        "summary": event_title(booking),
        "description": event_description(booking),
        "start": start,
        "end": end,
        "attendees": [{"email": booking.customer_email}] if booking.customer_email else [],
    }


def event_body(booking: Booking, time_zone: str) -> dict:
    body = event_changes(booking, time_zone)
    body["transparency"] = "opaque"
    body["extendedProperties"] = {
        "private": {"booking_id": str(booking.pk), "source": MIRROR_SOURCE},
    }
    if booking.resource.kind == Resource.Kind.GUIDE:
        body["reminders"] = {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "popup", "minutes": 60},
            ],
        }
    return body


class BookingMirror:
    """Applies booking changes to the linked calendar through the gateway."""

    def __init__(self, gateway, *, time_zone: str = "America/Montreal"):
        self.gateway = gateway
        self.time_zone = time_zone

    def create(self, booking: Booking) -> Optional[str]:
        resource = booking.resource
        if not resource.is_calendar_linked:
            logger.debug(f"Resource {resource.pk} has no calendar; booking {booking.pk} stays local")
            return None
        if booking.google_event_id:
            return booking.google_event_id
        if not booking.is_active:
            logger.info(f"Booking {booking.pk} is {booking.status}; not mirroring it")
            return None

        owner_id = resource.calendar_owner_id
        event_id = self.gateway.create_event(owner_id, resource.calendar_id, event_body(booking, self.time_zone))

        linked = Booking.objects.filter(
            pk=booking.pk,
            google_event_id__isnull=True,
            status__in=Booking.ACTIVE_STATUSES,
            deleted_at__isnull=True,
        ).update(google_event_id=event_id, synced_at=timezone.now())
        if not linked:
            # Linked, cancelled or deleted while the event was being created
            logger.warning(f"Booking {booking.pk} changed meanwhile; removing event {event_id}")
            self.gateway.delete_event(owner_id, resource.calendar_id, event_id)
            return None

        booking.google_event_id = event_id
        logger.info(f"Booking {booking.pk} mirrored as event {event_id}")
        return event_id

    def update(self, booking: Booking) -> bool:
        resource = booking.resource
        if not booking.google_event_id or not resource.is_calendar_linked:
            return False
        self.gateway.update_event(
            resource.calendar_owner_id,
            resource.calendar_id,
            booking.google_event_id,
            event_changes(booking, self.time_zone),
        )
        return True

    def delete(self, booking: Booking, event_id: Optional[str] = None) -> bool:
        resource = booking.resource
        event_id = event_id or booking.google_event_id
        if not event_id or not resource.is_calendar_linked:
            return False
        return self.gateway.delete_event(resource.calendar_owner_id, resource.calendar_id, event_id)
