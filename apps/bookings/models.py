"""Booking models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Optional

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore


class BookingQuerySet(models.QuerySet):
    def live(self):
        """Rows that have not been soft-deleted."""
        return self.filter(deleted_at__isnull=True)

    def active(self):
        """Rows that occupy their time range on any resource."""
        return self.live().filter(status__in=Booking.ACTIVE_STATUSES)

    def blocking(self, statuses: Iterable[str]):
        return self.live().filter(status__in=list(statuses))

    def overlapping(self, start: datetime, end: datetime):
        """Half-open overlap: touching at a boundary is not an overlap."""
        return self.filter(start__lt=end, end__gt=start)

    def upcoming(self, now: Optional[datetime] = None):
        return self.filter(end__gte=now or timezone.now())

    def for_listing(
        self,
        *,
        include_deleted: bool = False,
        include_historical: bool = False,
        now: Optional[datetime] = None,
    ):
        qs = self
        if not include_deleted:
            qs = qs.live()
        if not include_historical:
            qs = qs.upcoming(now)
        return qs.order_by("start")


class Booking(models.Model):
    """Reservation of one resource over the half-open interval [start, end)."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        BLOCKED = "blocked", "Blocked"
        CANCELLED = "cancelled", "Cancelled"
        DELETED = "deleted", "Deleted"

    class Source(models.TextChoices):
        WEBSITE = "website", "Website"
        GOOGLE = "google", "Google Calendar"

    ACTIVE_STATUSES = frozenset({Status.PENDING.value, Status.CONFIRMED.value, Status.BLOCKED.value})
    # Statuses reported as conflicts by the availability check. A pending
    # chalet request is not reported, but the storage guard and the overlap
    # constraint still reject any row overlapping an active booking.
    CHALET_BLOCKING_STATUSES = frozenset({Status.BLOCKED.value, Status.CONFIRMED.value})
    GUIDE_BLOCKING_STATUSES = ACTIVE_STATUSES

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource = models.ForeignKey(
        "resources.Resource",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    start = models.DateTimeField()
    end = models.DateTimeField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.WEBSITE)
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=50, blank=True)
    trip_type = models.CharField(max_length=100, blank=True)
    number_of_people = models.PositiveSmallIntegerField(default=1)
    google_event_id = models.CharField(max_length=1024, null=True, blank=True)
    notes = models.TextField(blank=True)
    is_paid = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ["start"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end__gt=models.F("start")),
                name="booking_end_after_start",
            ),
            models.CheckConstraint(
                condition=models.Q(deleted_at__isnull=True) | models.Q(status="deleted"),
                name="booking_deleted_status",
            ),
        ]
        indexes = [
            models.Index(fields=["resource", "start", "end"], name="booking_resource_range_idx"),
            models.Index(fields=["google_event_id"], name="booking_event_id_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.pk} for {self.resource_id} ({self.start:%Y-%m-%d %H:%M} - {self.end:%Y-%m-%d %H:%M})"

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None and str(self.status) in self.ACTIVE_STATUSES

    @property
    def is_external(self) -> bool:
        """Imported from the owner's calendar rather than booked on the site."""
        return self.source == self.Source.GOOGLE and bool(self.google_event_id)

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note

    def to_conflict(self) -> dict:
        return {
            "kind": "booking",
            "id": str(self.pk),
            "name": self.customer_name,
            "status": self.status,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }
