"""Resource models.

A ``Resource`` is anything that can be booked. Chalets and guides share the
``Resource`` table (multi-table inheritance) so bookings reference a single
foreign key and a single primary key space, whatever the kind.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore


class Establishment(models.Model):
    """Outfitter that owns chalets and shares one calendar credential for them."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="establishments",
    )
    calendar_connection = models.ForeignKey(
        "calendars.CalendarConnection",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="establishments",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Resource(models.Model):
    """Common identity of every bookable thing."""

    class Kind(models.TextChoices):
        CHALET = "chalet", "Chalet"
        GUIDE = "guide", "Guide"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=10, choices=Kind.choices, editable=False)
    name = models.CharField(max_length=255)
    calendar_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Google Calendar id mirroring this resource's bookings.",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [models.Index(fields=["kind", "is_active"], name="resource_kind_active_idx")]

    def __str__(self) -> str:
        return f"{self.get_kind_display()}: {self.name}"

    @property
    def specific(self) -> "Resource":
        """The Chalet or Guide row behind this resource."""
        if type(self) is not Resource:
            return self
        if self.kind == self.Kind.CHALET:
            return self.chalet
        return self.guide

    @property
    def is_calendar_linked(self) -> bool:
        return bool(self.calendar_id)

    @property
    def calendar_owner_id(self) -> Optional[uuid.UUID]:
        """Calendar connection whose credential reads and writes ``calendar_id``."""
        specific = self.specific
        if specific is self:
            return None
        return specific.calendar_owner_id

    @property
    def blocking_statuses(self) -> frozenset[str]:
        """Booking statuses the availability check reports as conflicts."""
        from apps.bookings.models import Booking

        if self.kind == self.Kind.CHALET:
            return Booking.CHALET_BLOCKING_STATUSES
        return Booking.GUIDE_BLOCKING_STATUSES

    def is_managed_by(self, user) -> bool:
        if not user or not user.is_authenticated:
            return False
        if user.is_staff or user.is_superuser:
            return True
        specific = self.specific
        if isinstance(specific, Chalet):
            return specific.establishment.owner_id == user.pk
        if isinstance(specific, Guide):
            return specific.user_id == user.pk
        return False


class Chalet(Resource):
    establishment = models.ForeignKey(
        Establishment,
        on_delete=models.PROTECT,
        related_name="chalets",
    )
    capacity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    nightly_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    description = models.TextField(blank=True)

    def save(self, *args, **kwargs):  # type: ignore
        self.kind = Resource.Kind.CHALET
        super().save(*args, **kwargs)

    @property
    def calendar_owner_id(self) -> Optional[uuid.UUID]:
        return self.establishment.calendar_connection_id


class Guide(Resource):
    """Fishing guide; owns a personal calendar connection."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="guide_profile",
    )
    email = models.EmailField(blank=True)
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    specialties = models.JSONField(default=list, blank=True)
    calendar_connection = models.ForeignKey(
        "calendars.CalendarConnection",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="guides",
    )
    availability_calendar_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Calendar where the guide advertises open slots.",
    )

    def save(self, *args, **kwargs):  # type: ignore
        self.kind = Resource.Kind.GUIDE
        super().save(*args, **kwargs)

    @property
    def calendar_owner_id(self) -> Optional[uuid.UUID]:
        return self.calendar_connection_id
