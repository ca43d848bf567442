"""Booking transaction manager.

Every write follows the same order:

1. ask the ``AvailabilityResolver`` (outside the write transaction, since
   it may call Google);
2. open a unit of work, lock the resource row, re-check active overlaps
   and write;
3. record a domain event that the message bus turns into a calendar mirror
   task once the transaction has committed.

Step 2 narrows the check-then-act gap between concurrent writers; on
PostgreSQL the exclusion constraint closes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from django.core.exceptions import ValidationError  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.resources.models import Resource
from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.errors import (
    BookingError,
    InvalidTransition,
    NotFound,
    PaidBookingLocked,
    Unavailable,
)
from shared.domain.value_objects import TimeRange

from .availability import STORAGE_CONFLICT, AvailabilityResolver, AvailabilityResult, get_resource
from .events import BookingCancelled, BookingConfirmed, BookingCreated, BookingUpdated
from .models import Booking

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "start",
    "end",
    "customer_name",
    "customer_email",
    "customer_phone",
    "trip_type",
    "number_of_people",
    "notes",
)


@dataclass(frozen=True)
class Customer:
    name: str
    email: str = ""
    phone: str = ""


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def lock_resource(resource_id) -> Resource:
    """Serialise writers of one resource for the rest of the transaction."""
    try:
        return _lock_queryset_if_possible(Resource.objects.filter(pk=resource_id)).get()
    except Resource.DoesNotExist as exc:
        raise NotFound(f"Resource {resource_id} does not exist.") from exc


def ensure_slot_is_free(resource: Resource, start: datetime, end: datetime, *, exclude_booking_id=None) -> None:
    """Raise ``Unavailable`` if an active booking of the resource overlaps [start, end)."""
    qs = Booking.objects.active().filter(resource=resource).overlapping(start, end)
    if exclude_booking_id is not None:
        qs = qs.exclude(pk=exclude_booking_id)

    clashes = list(qs.order_by("start")[:10])
    if clashes:
        raise Unavailable(STORAGE_CONFLICT, [booking.to_conflict() for booking in clashes])


def insert_booking(resource_id, **fields: Any) -> Booking:
    """
    Insert a booking under the resource lock.

    Used by the website path and by calendar reconciliation alike, so both
    respect the no-overlap rule for active bookings.
    """
    try:
        with transaction.atomic():
            resource = lock_resource(resource_id)
            if str(fields.get("status", Booking.Status.PENDING)) in Booking.ACTIVE_STATUSES:
                ensure_slot_is_free(resource, fields["start"], fields["end"])
            return Booking.objects.create(resource=resource, **fields)
    except IntegrityError as exc:
        logger.warning(f"Storage rejected overlapping booking on {resource_id}: {exc}")
        raise Unavailable(STORAGE_CONFLICT) from exc


class BookingService:
    def __init__(self, resolver: AvailabilityResolver, bus: Optional[MessageBus] = None):
        self.resolver = resolver
        self.bus = bus

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_availability(self, resource_id, start: datetime, end: datetime, exclude_booking_id=None) -> AvailabilityResult:
        return self.resolver.resolve(resource_id, start, end, exclude_booking_id=exclude_booking_id)

    def get_booking(self, booking_id, *, include_deleted: bool = False) -> Booking:
        qs = Booking.objects.select_related("resource")
        if not include_deleted:
            qs = qs.live()
        try:
            return qs.get(pk=booking_id)
        except (Booking.DoesNotExist, ValidationError) as exc:
            raise NotFound(f"Booking {booking_id} does not exist.") from exc

    def list_bookings(
        self,
        resource_id=None,
        *,
        status: Optional[str] = None,
        include_deleted: bool = False,
        include_historical: bool = False,
    ):
        qs = Booking.objects.select_related("resource").for_listing(
            include_deleted=include_deleted,
            include_historical=include_historical,
        )
        if resource_id is not None:
            qs = qs.filter(resource=get_resource(resource_id))
        if status:
            qs = qs.filter(status=status)
        return qs

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_booking(
        self,
        resource_id,
        start: datetime,
        end: datetime,
        customer: Customer,
        notes: str = "",
        *,
        status: str = Booking.Status.PENDING,
        trip_type: str = "",
        number_of_people: int = 1,
    ) -> Booking:
        period = TimeRange(start, end)
        if str(status) not in Booking.ACTIVE_STATUSES:
            raise InvalidTransition(f"A booking cannot be created as {status}.")

        result = self.resolver.resolve(resource_id, period.start, period.end)
        if not result.available:
            raise Unavailable(result.reason, result.conflicts)

        with DjangoUnitOfWork(self.bus) as uow:
            booking = insert_booking(
                resource_id,
                start=period.start,
                end=period.end,
                status=status,
                source=Booking.Source.WEBSITE,
                customer_name=customer.name,
                customer_email=customer.email,
                customer_phone=customer.phone,
                trip_type=trip_type,
                number_of_people=number_of_people,
                notes=notes or "",
                google_event_id=None,
            )
            uow.add_event(BookingCreated(booking_id=booking.pk, resource_id=booking.resource_id))

        logger.info(
            f"Booking {booking.pk} created on {booking.resource_id} for {period} "
            f"({booking.status}{', remote check skipped' if result.degraded else ''})"
        )
        return booking

    def update_booking(self, booking_id, changes: Mapping[str, Any], *, allow_paid_override: bool = False) -> Booking:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise BookingError(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")

        current = self.get_booking(booking_id)
        new_start = changes.get("start", current.start)
        new_end = changes.get("end", current.end)
        time_changed = new_start != current.start or new_end != current.end

        if time_changed:
            if current.is_paid and not allow_paid_override:
                raise PaidBookingLocked("Paid bookings cannot be rescheduled without an override.")
            period = TimeRange(new_start, new_end)
            result = self.resolver.resolve(
                current.resource_id, period.start, period.end, exclude_booking_id=current.pk
            )
            if not result.available:
                raise Unavailable(result.reason, result.conflicts)

        try:
            with DjangoUnitOfWork(self.bus) as uow:
                resource = lock_resource(current.resource_id)
                booking = self._lock_booking(booking_id)
                if time_changed:
                    if booking.is_paid and not allow_paid_override:
                        raise PaidBookingLocked("Paid bookings cannot be rescheduled without an override.")
                    if booking.is_active:
                        ensure_slot_is_free(resource, new_start, new_end, exclude_booking_id=booking.pk)

                changed = [name for name, value in changes.items() if getattr(booking, name) != value]
                for name in changed:
                    setattr(booking, name, changes[name])
                if changed:
                    booking.save(update_fields=[*changed, "updated_at"])
                    if booking.google_event_id:
                        uow.add_event(BookingUpdated(
                            booking_id=booking.pk,
                            resource_id=booking.resource_id,
                            changed_fields=tuple(changed),
                        ))
        except IntegrityError as exc:
            raise Unavailable(STORAGE_CONFLICT) from exc

        if changed:
            logger.info(f"Booking {booking.pk} updated: {', '.join(changed)}")
        return booking

    def cancel_booking(self, booking_id, reason: str = "", *, allow_paid_override: bool = False) -> Booking:
        self.get_booking(booking_id)

        with DjangoUnitOfWork(self.bus) as uow:
            booking = self._lock_booking(booking_id)
            if booking.status == Booking.Status.CANCELLED:
                return booking
            if booking.is_paid and not allow_paid_override:
                raise PaidBookingLocked("Paid bookings cannot be cancelled without an override.")

            booking.status = Booking.Status.CANCELLED
            if reason:
                booking.append_note(f"Cancellation reason: {reason}")
            booking.save(update_fields=["status", "notes", "updated_at"])

            if booking.google_event_id:
                uow.add_event(BookingCancelled(
                    booking_id=booking.pk,
                    resource_id=booking.resource_id,
                    google_event_id=booking.google_event_id,
                    reason=reason,
                ))

        logger.info(f"Booking {booking.pk} cancelled{f': {reason}' if reason else ''}")
        return booking

    def confirm_booking(self, booking_id, *, paid: bool = False) -> Booking:
        self.get_booking(booking_id)

        with DjangoUnitOfWork(self.bus) as uow:
            booking = self._lock_booking(booking_id)
            if booking.status not in (Booking.Status.PENDING, Booking.Status.CONFIRMED):
                raise InvalidTransition(f"A {booking.status} booking cannot be confirmed.")
            if booking.status == Booking.Status.CONFIRMED and (booking.is_paid or not paid):
                return booking

            booking.status = Booking.Status.CONFIRMED
            booking.is_paid = booking.is_paid or paid
            booking.save(update_fields=["status", "is_paid", "updated_at"])

            if booking.google_event_id:
                uow.add_event(BookingConfirmed(
                    booking_id=booking.pk,
                    resource_id=booking.resource_id,
                    is_paid=booking.is_paid,
                ))

        logger.info(f"Booking {booking.pk} confirmed{' and paid' if booking.is_paid else ''}")
        return booking

    # ------------------------------------------------------------------

    @staticmethod
    def _lock_booking(booking_id) -> Booking:
        qs = _lock_queryset_if_possible(Booking.objects.live().filter(pk=booking_id))
        try:
            return qs.get()
        except Booking.DoesNotExist as exc:
            raise NotFound(f"Booking {booking_id} does not exist.") from exc

