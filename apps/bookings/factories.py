"""Composition root.

Builds services with their collaborators from settings. Views and tasks call
these instead of reaching for module level singletons, and tests swap the
gateway by passing their own.
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings  # type: ignore

from apps.calendars.classifier import AvailabilityEventClassifier
from apps.calendars.gateway import CalendarGateway
from apps.calendars.reconciler import CalendarReconciler
from apps.calendars.slots import OpenSlotFinder
from apps.calendars.tokens import GoogleTokenProvider
from shared.application.message_bus import MessageBus

from .availability import AvailabilityResolver
from .handlers import register_handlers
from .mirroring import BookingMirror
from .services import BookingService


def build_token_provider() -> GoogleTokenProvider:
    return GoogleTokenProvider.from_settings()


def build_gateway(token_provider=None) -> CalendarGateway:
    return CalendarGateway.from_settings(token_provider or build_token_provider())


def build_message_bus() -> MessageBus:
    return register_handlers(MessageBus())


def build_resolver(gateway=None) -> AvailabilityResolver:
    return AvailabilityResolver(gateway or build_gateway())


def build_booking_service(gateway=None) -> BookingService:
    return BookingService(build_resolver(gateway), build_message_bus())


def build_booking_mirror(gateway=None) -> BookingMirror:
    return BookingMirror(gateway or build_gateway(), time_zone=settings.CALENDAR_TIME_ZONE)


def build_reconciler(gateway=None) -> CalendarReconciler:
    return CalendarReconciler(
        gateway or build_gateway(),
        window=timedelta(days=settings.CALENDAR_RECONCILE_WINDOW_DAYS),
        lock_timeout=settings.CALENDAR_RECONCILE_LOCK_TIMEOUT,
    )


def build_slot_finder(gateway=None) -> OpenSlotFinder:
    return OpenSlotFinder(gateway or build_gateway(), AvailabilityEventClassifier.from_settings())
