"""Open slots advertised by guides on their availability calendar."""

from __future__ import annotations

import logging
from datetime import datetime

from apps.bookings.availability import get_resource
from apps.bookings.models import Booking
from apps.resources.models import Guide, Resource
from shared.domain.errors import CalendarNotLinked
from shared.domain.value_objects import TimeRange

from .classifier import AvailabilityEventClassifier
from .external import ExternalEvent

logger = logging.getLogger(__name__)


class OpenSlotFinder:
    def __init__(self, gateway, classifier: AvailabilityEventClassifier):
        self.gateway = gateway
        self.classifier = classifier

    def find(self, resource_id, start: datetime, end: datetime) -> list[ExternalEvent]:
        """
        Availability markers in [start, end) that no booking has taken yet.

        A slot is dropped when any non-cancelled, non-deleted booking of the
        guide overlaps it.
        """
        period = TimeRange(start, end)
        guide = self._guide(resource_id)
        if not guide.availability_calendar_id:
            raise CalendarNotLinked(f"Guide {guide.name} has no availability calendar.")

        events = self.gateway.list_events(
            guide.calendar_owner_id, guide.availability_calendar_id, period.start, period.end
        )
        markers = [
            event for event in events
            if not event.is_cancelled and event.has_times and self.classifier(event)
        ]

        booked = list(
            Booking.objects.active()
            .filter(resource=guide)
            .overlapping(period.start, period.end)
            .values_list("start", "end")
        )
        open_slots = [
            event for event in markers
            if not any(event.overlaps(booked_start, booked_end) for booked_start, booked_end in booked)
        ]
        logger.debug(
            f"Guide {guide.pk}: {len(events)} events, {len(markers)} availability markers, "
            f"{len(open_slots)} still open"
        )
        return open_slots

    @staticmethod
    def _guide(resource_id) -> Guide:
        resource = get_resource(resource_id)
        if resource.kind != Resource.Kind.GUIDE:
            raise CalendarNotLinked("Only guides publish open slots.")
        return resource.guide
