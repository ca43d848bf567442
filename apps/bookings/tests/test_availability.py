"""Tests for the availability resolver."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest import mock
from zoneinfo import ZoneInfo

import httplib2
from django.test import TestCase
from googleapiclient.errors import HttpError

from apps.bookings.availability import EXTERNAL_CONFLICT, LOCAL_CONFLICT, AvailabilityResolver
from apps.bookings.models import Booking
from apps.calendars.external import ExternalEvent
from apps.calendars.gateway import CalendarGateway
from apps.calendars.models import CalendarConnection
from apps.calendars.tokens import AccessToken
from apps.resources.models import Chalet, Establishment, Guide
from shared.domain.errors import AuthRequired, InvalidRange, NotFound, UpstreamUnavailable

MONTREAL = ZoneInfo("America/Montreal")


def day(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=MONTREAL)


class ChaletAvailabilityTests(TestCase):
    def setUp(self) -> None:
        self.connection = CalendarConnection.objects.create(label="Pourvoirie du Lac", refresh_token="refresh")
        self.establishment = Establishment.objects.create(
            name="Pourvoirie du Lac",
            calendar_connection=self.connection,
        )
        self.chalet = Chalet.objects.create(
            establishment=self.establishment,
            name="Chalet Huard",
            capacity=6,
            nightly_price=Decimal("250.00"),
        )
        self.booking = Booking.objects.create(
            resource=self.chalet,
            start=day("2025-07-01"),
            end=day("2025-07-05"),
            status=Booking.Status.CONFIRMED,
            customer_name="Marie Tremblay",
        )
        self.resolver = AvailabilityResolver()

    def test_overlapping_request_reports_the_booking(self) -> None:
        result = self.resolver.resolve(self.chalet.pk, day("2025-07-03"), day("2025-07-07"))

        self.assertFalse(result.available)
        self.assertEqual(result.reason, LOCAL_CONFLICT)
        self.assertEqual([c["id"] for c in result.conflicts], [str(self.booking.pk)])

    def test_checkin_on_checkout_day_is_free(self) -> None:
        result = self.resolver.resolve(self.chalet.pk, day("2025-07-05"), day("2025-07-08"))

        self.assertTrue(result.available)
        self.assertEqual(result.conflicts, [])

    def test_pending_chalet_request_is_not_reported_as_conflict(self) -> None:
        Booking.objects.create(
            resource=self.chalet,
            start=day("2025-07-10"),
            end=day("2025-07-12"),
            status=Booking.Status.PENDING,
            customer_name="Demande",
        )

        result = self.resolver.resolve(self.chalet.pk, day("2025-07-10"), day("2025-07-12"))

        self.assertTrue(result.available)

    def test_cancelled_and_deleted_bookings_never_block(self) -> None:
        self.booking.status = Booking.Status.CANCELLED
        self.booking.save()
        Booking.objects.create(
            resource=self.chalet,
            start=day("2025-07-02"),
            end=day("2025-07-04"),
            status=Booking.Status.DELETED,
            deleted_at=day("2025-06-01"),
            customer_name="Supprimé",
        )

        result = self.resolver.resolve(self.chalet.pk, day("2025-07-01"), day("2025-07-05"))

        self.assertTrue(result.available)

    def test_excluded_booking_is_ignored(self) -> None:
        result = self.resolver.resolve(
            self.chalet.pk,
            day("2025-07-02"),
            day("2025-07-06"),
            exclude_booking_id=self.booking.pk,
        )

        self.assertTrue(result.available)

    def test_invalid_range_is_rejected(self) -> None:
        with self.assertRaises(InvalidRange):
            self.resolver.resolve(self.chalet.pk, day("2025-07-05"), day("2025-07-05"))

    def test_unknown_resource(self) -> None:
        with self.assertRaises(NotFound):
            self.resolver.resolve("not-a-uuid", day("2025-07-05"), day("2025-07-06"))


class RemoteAvailabilityTests(TestCase):
    def setUp(self) -> None:
        self.connection = CalendarConnection.objects.create(label="Guide", refresh_token="refresh")
        self.guide = Guide.objects.create(
            name="Jean Pêcheur",
            calendar_id="guide@example.com",
            calendar_connection=self.connection,
        )
        self.gateway = mock.Mock()
        self.gateway.list_events.return_value = []
        self.resolver = AvailabilityResolver(self.gateway)

    def test_pending_guide_booking_blocks(self) -> None:
        Booking.objects.create(
            resource=self.guide,
            start=day("2025-08-01T09:00"),
            end=day("2025-08-01T12:00"),
            status=Booking.Status.PENDING,
            customer_name="Luc",
        )

        result = self.resolver.resolve(self.guide.pk, day("2025-08-01T11:00"), day("2025-08-01T13:00"))

        self.assertFalse(result.available)
        self.assertEqual(result.reason, LOCAL_CONFLICT)
        self.gateway.list_events.assert_not_called()

    def test_remote_event_blocks(self) -> None:
        self.gateway.list_events.return_value = [
            ExternalEvent(
                id="evt-remote",
                start=day("2025-08-01T09:00"),
                end=day("2025-08-01T17:00"),
                summary="Sortie privée",
            )
        ]

        result = self.resolver.resolve(self.guide.pk, day("2025-08-01T15:00"), day("2025-08-01T18:00"))

        self.assertFalse(result.available)
        self.assertEqual(result.reason, EXTERNAL_CONFLICT)
        self.assertEqual(result.conflicts[0]["id"], "evt-remote")
        self.gateway.list_events.assert_called_once_with(
            self.connection.pk,
            "guide@example.com",
            day("2025-08-01T15:00"),
            day("2025-08-01T18:00"),
        )

    def test_cancelled_and_touching_remote_events_do_not_block(self) -> None:
        self.gateway.list_events.return_value = [
            ExternalEvent(
                id="evt-cancelled",
                start=day("2025-08-01T09:00"),
                end=day("2025-08-01T17:00"),
                status="cancelled",
            ),
            ExternalEvent(
                id="evt-before",
                start=day("2025-08-01T06:00"),
                end=day("2025-08-01T09:00"),
            ),
        ]

        result = self.resolver.resolve(self.guide.pk, day("2025-08-01T09:00"), day("2025-08-01T12:00"))

        self.assertTrue(result.available)

    def test_mirror_of_excluded_booking_is_not_a_conflict(self) -> None:
        booking = Booking.objects.create(
            resource=self.guide,
            start=day("2025-08-01T09:00"),
            end=day("2025-08-01T12:00"),
            status=Booking.Status.CONFIRMED,
            customer_name="Luc",
            google_event_id="evt-mirror",
        )
        self.gateway.list_events.return_value = [
            ExternalEvent(
                id="evt-mirror",
                start=day("2025-08-01T09:00"),
                end=day("2025-08-01T12:00"),
                booking_id=str(booking.pk),
            )
        ]

        result = self.resolver.resolve(
            self.guide.pk,
            day("2025-08-01T10:00"),
            day("2025-08-01T13:00"),
            exclude_booking_id=booking.pk,
        )

        self.assertTrue(result.available)

    def test_remote_failure_degrades_to_local_answer(self) -> None:
        for error in (UpstreamUnavailable("timeout"), AuthRequired(), NotFound("calendar gone")):
            with self.subTest(error=error.code):
                self.gateway.list_events.side_effect = error

                result = self.resolver.resolve(
                    self.guide.pk, day("2025-08-02T09:00"), day("2025-08-02T12:00")
                )

                self.assertTrue(result.available)
                self.assertTrue(result.degraded)

    def test_deleted_remote_calendar_degrades_to_local_answer(self) -> None:
        tokens = mock.Mock()
        tokens.get_access_token.return_value = AccessToken("access-token")
        service = mock.MagicMock()
        service.events.return_value.list.return_value.execute.side_effect = HttpError(
            httplib2.Response({"status": 404}), b'{"error": {"message": "Not Found"}}'
        )
        resolver = AvailabilityResolver(CalendarGateway(tokens, service_factory=mock.Mock(return_value=service)))

        result = resolver.resolve(self.guide.pk, day("2025-08-02T09:00"), day("2025-08-02T12:00"))

        self.assertTrue(result.available)
        self.assertTrue(result.degraded)

    def test_unlinked_resource_skips_remote_check(self) -> None:
        self.guide.calendar_id = ""
        self.guide.save()

        result = self.resolver.resolve(self.guide.pk, day("2025-08-02T09:00"), day("2025-08-02T12:00"))

        self.assertTrue(result.available)
        self.assertFalse(result.degraded)
        self.gateway.list_events.assert_not_called()
