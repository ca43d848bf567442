"""Calendar reconciliation.

Owners edit their Google Calendar directly: they add events for walk-in
customers, delete events for no-shows, move things around. One reconcile
pass folds those edits back into the booking table for a single resource.

Pass outline:

1. fetch remote events for [now, now + window) (failure aborts the pass);
2. fetch live local bookings ending after now;
3. local bookings whose event vanished (or was cancelled) are soft-deleted,
   except paid ones which are reported as ``protected``;
4. remote events without a local booking are linked back when they carry
   the id of an unlinked local booking, otherwise imported as confirmed
   bookings with ``source=google``;
5. matched events whose times moved are reported as ``drifted``;
6. ``synced_at`` is stamped on every live booking of the resource.

Per-item failures go to ``errors`` and never stop the pass. Passes for one
resource are serialised with a cache lock.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from django.db import DatabaseError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.availability import get_resource
from apps.bookings.models import Booking
from apps.bookings.services import insert_booking
from apps.resources.models import Resource
from shared.domain.errors import BookingError, CalendarNotLinked, ReconcileInProgress
from shared.infrastructure.locks import LockHeld, cache_lock

from .external import ExternalEvent

logger = logging.getLogger(__name__)

DELETED_NOTE = "[AUTO-SYNC] Event deleted from Google Calendar"
IMPORTED_NOTE = "[AUTO-SYNC] Imported from Google Calendar"
UNTITLED = "Untitled Event"


@dataclass
class SyncResult:
    resource_id: str
    created: list[str] = field(default_factory=list)
    soft_deleted: list[str] = field(default_factory=list)
    protected: list[str] = field(default_factory=list)
    relinked: list[str] = field(default_factory=list)
    drifted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    synced_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["synced_at"] = self.synced_at.isoformat() if self.synced_at else None
        return payload

    @property
    def summary(self) -> str:
        return (
            f"created={len(self.created)} soft_deleted={len(self.soft_deleted)} "
            f"protected={len(self.protected)} relinked={len(self.relinked)} "
            f"drifted={len(self.drifted)} errors={len(self.errors)}"
        )


class CalendarReconciler:
    lock_key_prefix = "calendars:reconcile"

    def __init__(
        self,
        gateway,
        *,
        window: timedelta = timedelta(days=183),
        lock_timeout: int = 300,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.gateway = gateway
        self.window = window
        self.lock_timeout = lock_timeout
        self.clock = clock

    def reconcile(self, resource_id) -> SyncResult:
        resource = get_resource(resource_id)
        if not resource.is_calendar_linked:
            raise CalendarNotLinked(f"{resource} has no linked calendar.")

        try:
            with cache_lock(f"{self.lock_key_prefix}:{resource.pk}", self.lock_timeout):
                return self._reconcile(resource)
        except LockHeld as exc:
            raise ReconcileInProgress() from exc

    # ------------------------------------------------------------------

    def _reconcile(self, resource: Resource) -> SyncResult:
        now = self.clock()
        window_end = now + self.window
        logger.info(f"Reconciling {resource.pk} ({resource.calendar_id}) until {window_end:%Y-%m-%d}")

        remote = self.gateway.list_events(
            resource.calendar_owner_id,
            resource.calendar_id,
            now,
            window_end,
            show_deleted=True,
        )
        remote_by_id = {event.id: event for event in remote}

        local = list(Booking.objects.live().filter(resource=resource).upcoming(now).order_by("start"))
        linked = {booking.google_event_id: booking for booking in local if booking.google_event_id}

        result = SyncResult(resource_id=str(resource.pk))
        self._detect_deletions(local, remote_by_id, window_end, now, result)
        self._detect_creations(resource, remote, linked, now, result)

        try:
            Booking.objects.live().filter(resource=resource).update(synced_at=now)
            result.synced_at = now
        except DatabaseError as exc:
            logger.warning(f"Could not stamp synced_at on {resource.pk}: {exc}")
            result.errors.append(f"synced_at not stamped: {exc}")

        logger.info(f"Reconciled {resource.pk}: {result.summary}")
        return result

    def _detect_deletions(self, local, remote_by_id, window_end, now, result: SyncResult) -> None:
        for booking in local:
            if not booking.google_event_id or booking.status == Booking.Status.CANCELLED:
                continue
            # Bookings starting past the window were not fetched
            if booking.start >= window_end:
                continue

            counterpart = remote_by_id.get(booking.google_event_id)
            if counterpart is not None and not counterpart.is_cancelled:
                if self._drifted(booking, counterpart):
                    logger.warning(
                        f"Event {counterpart.id} moved away from booking {booking.pk}; leaving the booking as is"
                    )
                    result.drifted.append(str(booking.pk))
                continue

            if booking.is_paid:
                logger.warning(f"Event of paid booking {booking.pk} was deleted in Google Calendar; keeping it")
                result.protected.append(str(booking.pk))
                continue

            try:
                deleted = Booking.objects.filter(
                    pk=booking.pk, deleted_at__isnull=True, is_paid=False
                ).update(
                    status=Booking.Status.DELETED,
                    deleted_at=now,
                    notes=f"{booking.notes}\n{DELETED_NOTE}" if booking.notes else DELETED_NOTE,
                    updated_at=now,
                )
            except DatabaseError as exc:
                result.errors.append(f"booking {booking.pk}: {exc}")
                continue

            if deleted:
                result.soft_deleted.append(str(booking.pk))
            else:
                result.errors.append(f"booking {booking.pk}: changed during reconcile, skipped")

    def _detect_creations(self, resource, remote, linked, now, result: SyncResult) -> None:
        for event in remote:
            if event.id in linked or event.is_cancelled:
                continue
            if not event.has_times:
                logger.warning(f"Event {event.id} has no start or end; skipping")
                continue
            if event.booking_id and self._relink(resource, event, now, result):
                continue
            self._import(resource, event, now, result)

    def _relink(self, resource, event: ExternalEvent, now, result: SyncResult) -> bool:
        """
        Attach an event that names one of our bookings in its private data.

        Returns True when the event belongs to a local booking, whether it
        could be linked or not, so it is never imported twice.
        """
        owner = Booking.objects.filter(resource=resource, pk__in=_as_uuid_list(event.booking_id)).first()
        if owner is None:
            return False
        if owner.google_event_id:
            logger.warning(f"Event {event.id} duplicates the mirror of booking {owner.pk}; not importing it")
            return True

        linked = Booking.objects.filter(pk=owner.pk, google_event_id__isnull=True).update(
            google_event_id=event.id, synced_at=now
        )
        if linked:
            result.relinked.append(str(owner.pk))
        return True

    def _import(self, resource, event: ExternalEvent, now, result: SyncResult) -> None:
        start, end = event.booked_range
        try:
            booking = insert_booking(
                resource.pk,
                start=start,
                end=end,
                status=Booking.Status.CONFIRMED,
                source=Booking.Source.GOOGLE,
                google_event_id=event.id,
                customer_name=(event.summary or UNTITLED)[:255],
                customer_email=event.creator_email,
                notes=event.description or IMPORTED_NOTE,
                synced_at=now,
            )
        except BookingError as exc:
            logger.warning(f"Event {event.id} not imported: {exc.detail}")
            result.errors.append(f"event {event.id}: {exc.detail}")
            return
        except DatabaseError as exc:
            result.errors.append(f"event {event.id}: {exc}")
            return
        result.created.append(str(booking.pk))

    @staticmethod
    def _drifted(booking: Booking, event: ExternalEvent) -> bool:
        bounds = event.booked_range
        return bounds is not None and bounds != (booking.start, booking.end)


def _as_uuid_list(value: Optional[str]) -> list:
    try:
        return [uuid.UUID(str(value))]
    except ValueError:
        return []
