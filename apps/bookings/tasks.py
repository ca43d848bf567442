"""Celery tasks for the booking domain.

Mirroring is best effort: the booking is already committed when these run,
so a calendar failure is logged and the booking stays valid and unmirrored.
Reconciliation picks the difference up later.
"""

from __future__ import annotations

import logging
from typing import Optional

from celery import shared_task  # type: ignore

from shared.domain.errors import BookingError

from .models import Booking

logger = logging.getLogger(__name__)


def _load(booking_id: str) -> Optional[Booking]:
    booking = Booking.objects.select_related("resource").filter(pk=booking_id).first()
    if booking is None:
        logger.warning(f"Booking {booking_id} disappeared before it could be mirrored")
    return booking


@shared_task(name="bookings.mirror_booking_created")
def mirror_booking_created(booking_id: str) -> Optional[str]:
    """Create the calendar event of a new booking and store its id."""
    from .factories import build_booking_mirror

    booking = _load(booking_id)
    if booking is None:
        return None
    try:
        return build_booking_mirror().create(booking)
    except BookingError as exc:
        logger.warning(f"Booking {booking_id} left unmirrored: {exc.detail}")
        return None


@shared_task(name="bookings.mirror_booking_updated")
def mirror_booking_updated(booking_id: str) -> bool:
    from .factories import build_booking_mirror

    booking = _load(booking_id)
    if booking is None:
        return False
    try:
        return build_booking_mirror().update(booking)
    except BookingError as exc:
        logger.warning(f"Calendar event of booking {booking_id} not updated: {exc.detail}")
        return False


@shared_task(name="bookings.mirror_booking_cancelled")
def mirror_booking_cancelled(booking_id: str, event_id: str) -> bool:
    """Remove the calendar event of a cancelled booking."""
    from .factories import build_booking_mirror

    booking = _load(booking_id)
    if booking is None:
        return False
    try:
        return build_booking_mirror().delete(booking, event_id)
    except BookingError as exc:
        logger.warning(f"Calendar event {event_id} of cancelled booking {booking_id} not deleted: {exc.detail}")
        return False
