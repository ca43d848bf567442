"""Message bus handlers for booking events.

Handlers only enqueue Celery tasks; the calendar round trip happens in a
worker, never in the request that committed the booking.
"""

from __future__ import annotations

import logging

from shared.application.message_bus import MessageBus

from .events import BookingCancelled, BookingConfirmed, BookingCreated, BookingUpdated

logger = logging.getLogger(__name__)


def enqueue_mirror_created(event: BookingCreated) -> None:
    from .tasks import mirror_booking_created  # Local import to prevent circular dependency

    mirror_booking_created.delay(str(event.booking_id))


def enqueue_mirror_updated(event: BookingUpdated | BookingConfirmed) -> None:
    from .tasks import mirror_booking_updated

    mirror_booking_updated.delay(str(event.booking_id))


def enqueue_mirror_cancelled(event: BookingCancelled) -> None:
    from .tasks import mirror_booking_cancelled

    mirror_booking_cancelled.delay(str(event.booking_id), event.google_event_id)


def register_handlers(bus: MessageBus) -> MessageBus:
    bus.register_event_handler(BookingCreated, enqueue_mirror_created)
    bus.register_event_handler(BookingUpdated, enqueue_mirror_updated)
    bus.register_event_handler(BookingConfirmed, enqueue_mirror_updated)
    bus.register_event_handler(BookingCancelled, enqueue_mirror_cancelled)
    return bus
