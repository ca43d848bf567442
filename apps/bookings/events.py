"""
Booking Domain Events

Published after the booking transaction commits. Handlers mirror the change
to the resource's Google Calendar.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A booking was stored

    Triggers:
    - Create the mirrored calendar event and write its id back
    """
    booking_id: UUID
    resource_id: UUID


@dataclass
class BookingUpdated(DomainEvent):
    """
    Event: Times, customer details or notes of a booking changed

    Triggers:
    - Patch the mirrored calendar event, if there is one
    """
    booking_id: UUID
    resource_id: UUID
    changed_fields: tuple[str, ...] = ()


@dataclass
class BookingConfirmed(DomainEvent):
    """Event: A pending booking was confirmed (and possibly paid)"""
    booking_id: UUID
    resource_id: UUID
    is_paid: bool = False


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: A booking was cancelled

    Triggers:
    - Delete the mirrored calendar event
    """
    booking_id: UUID
    resource_id: UUID
    google_event_id: str
    reason: str = ""
