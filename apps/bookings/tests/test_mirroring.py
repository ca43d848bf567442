"""Tests for mirroring bookings into Google Calendar."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest import mock
from zoneinfo import ZoneInfo

from django.test import TestCase

from apps.bookings.factories import build_booking_service
from apps.bookings.mirroring import MIRROR_SOURCE, BookingMirror, event_body, event_title
from apps.bookings.models import Booking
from apps.bookings.services import Customer
from apps.bookings.tasks import mirror_booking_cancelled, mirror_booking_created
from apps.calendars.models import CalendarConnection
from apps.resources.models import Chalet, Establishment, Guide
from shared.domain.errors import UpstreamUnavailable

MONTREAL = ZoneInfo("America/Montreal")
TZ = "America/Montreal"


def at(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=MONTREAL)


class MirrorFixtures(TestCase):
    def setUp(self) -> None:
        self.connection = CalendarConnection.objects.create(label="Pourvoirie", refresh_token="refresh")
        self.establishment = Establishment.objects.create(name="Pourvoirie du Lac", calendar_connection=self.connection)
        self.chalet = Chalet.objects.create(
            establishment=self.establishment,
            name="Chalet Huard",
            calendar_id="chalets@example.com",
            nightly_price=Decimal("250.00"),
        )
        self.guide = Guide.objects.create(
            name="Jean Pêcheur",
            calendar_id="guide@example.com",
            calendar_connection=self.connection,
        )


class EventBodyTests(MirrorFixtures):
    def test_chalet_stay_is_all_day_with_exclusive_end(self) -> None:
        booking = Booking.objects.create(
            resource=self.chalet,
            start=at("2025-07-01T00:00"),
            end=at("2025-07-05T00:00"),
            status=Booking.Status.CONFIRMED,
            customer_name="Marie Tremblay",
            customer_email="marie@example.com",
        )

        body = event_body(booking, TZ)

        self.assertEqual(body["summary"], "Chalet Huard - Marie Tremblay")
        self.assertEqual(body["start"], {"date": "2025-07-01"})
        self.assertEqual(body["end"], {"date": "2025-07-05"})
        self.assertEqual(body["attendees"], [{"email": "marie@example.com"}])
        self.assertEqual(body["transparency"], "opaque")
        self.assertEqual(
            body["extendedProperties"]["private"],
            {"booking_id": str(booking.pk), "source": MIRROR_SOURCE},
        )
        self.assertNotIn("reminders", body)
        self.assertIn("Réservation par Marie Tremblay", body["description"])
        self.assertIn(f"Booking ID: {booking.pk}", body["description"])

    def test_guide_trip_is_timed_with_reminders(self) -> None:
        booking = Booking.objects.create(
            resource=self.guide,
            start=at("2025-08-01T09:00"),
            end=at("2025-08-01T17:00"),
            status=Booking.Status.PENDING,
            customer_name="Luc Gagnon",
            trip_type="Pêche au doré",
            number_of_people=3,
            is_paid=False,
        )

        body = event_body(booking, TZ)

        self.assertEqual(event_title(booking), "Pêche au doré - Luc Gagnon")
        self.assertEqual(body["start"], {"dateTime": "2025-08-01T09:00:00-04:00", "timeZone": TZ})
        self.assertEqual(body["end"], {"dateTime": "2025-08-01T17:00:00-04:00", "timeZone": TZ})
        self.assertEqual(body["attendees"], [])
        self.assertEqual(
            body["reminders"]["overrides"],
            [{"method": "email", "minutes": 1440}, {"method": "popup", "minutes": 60}],
        )
        self.assertIn("People: 3", body["description"])
        self.assertIn("Status: Pending", body["description"])


class BookingMirrorTests(MirrorFixtures):
    def setUp(self) -> None:
        super().setUp()
        self.gateway = mock.Mock()
        self.gateway.create_event.return_value = "evt-new"
        self.mirror = BookingMirror(self.gateway, time_zone=TZ)
        self.booking = Booking.objects.create(
            resource=self.guide,
            start=at("2025-08-01T09:00"),
            end=at("2025-08-01T17:00"),
            status=Booking.Status.CONFIRMED,
            customer_name="Luc Gagnon",
        )

    def test_create_stores_event_id(self) -> None:
        event_id = self.mirror.create(self.booking)

        self.assertEqual(event_id, "evt-new")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.google_event_id, "evt-new")
        self.assertIsNotNone(self.booking.synced_at)
        owner_id, calendar_id, body = self.gateway.create_event.call_args.args
        self.assertEqual(owner_id, self.connection.pk)
        self.assertEqual(calendar_id, "guide@example.com")
        self.assertEqual(body["extendedProperties"]["private"]["booking_id"], str(self.booking.pk))

    def test_create_removes_duplicate_when_already_linked(self) -> None:
        stale = Booking.objects.get(pk=self.booking.pk)
        Booking.objects.filter(pk=self.booking.pk).update(google_event_id="evt-first")

        self.assertIsNone(self.mirror.create(stale))

        self.gateway.delete_event.assert_called_once_with(self.connection.pk, "guide@example.com", "evt-new")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.google_event_id, "evt-first")

    def test_create_removes_event_when_cancelled_in_flight(self) -> None:
        def cancel_then_create(*args):
            Booking.objects.filter(pk=self.booking.pk).update(status=Booking.Status.CANCELLED)
            return "evt-new"

        self.gateway.create_event.side_effect = cancel_then_create

        self.assertIsNone(self.mirror.create(self.booking))

        self.gateway.delete_event.assert_called_once_with(self.connection.pk, "guide@example.com", "evt-new")
        self.booking.refresh_from_db()
        self.assertIsNone(self.booking.google_event_id)
        self.assertEqual(self.booking.status, Booking.Status.CANCELLED)

    def test_unlinked_resource_is_not_mirrored(self) -> None:
        self.guide.calendar_id = ""
        self.guide.save()
        booking = Booking.objects.get(pk=self.booking.pk)

        self.assertIsNone(self.mirror.create(booking))
        self.gateway.create_event.assert_not_called()

    def test_update_patches_existing_event(self) -> None:
        self.booking.google_event_id = "evt-1"
        self.booking.save()

        self.assertTrue(self.mirror.update(self.booking))

        owner_id, calendar_id, event_id, changes = self.gateway.update_event.call_args.args
        self.assertEqual((calendar_id, event_id), ("guide@example.com", "evt-1"))
        self.assertNotIn("extendedProperties", changes)
        self.assertIn("description", changes)

    def test_delete_uses_given_event_id(self) -> None:
        self.gateway.delete_event.return_value = True

        self.assertTrue(self.mirror.delete(self.booking, "evt-9"))
        self.gateway.delete_event.assert_called_once_with(self.connection.pk, "guide@example.com", "evt-9")


@mock.patch("apps.bookings.factories.build_gateway")
class MirrorTaskTests(MirrorFixtures):
    def test_created_booking_is_mirrored_after_commit(self, build_gateway) -> None:
        gateway = build_gateway.return_value
        gateway.list_events.return_value = []
        gateway.create_event.return_value = "evt-77"

        with self.captureOnCommitCallbacks(execute=True):
            booking = build_booking_service().create_booking(
                self.chalet.pk,
                at("2025-07-01T00:00"),
                at("2025-07-05T00:00"),
                Customer(name="Marie Tremblay"),
                status=Booking.Status.CONFIRMED,
            )

        booking.refresh_from_db()
        self.assertEqual(booking.google_event_id, "evt-77")
        gateway.create_event.assert_called_once()

    def test_nothing_is_mirrored_when_rolled_back(self, build_gateway) -> None:
        gateway = build_gateway.return_value
        gateway.list_events.return_value = []
        Booking.objects.create(
            resource=self.chalet,
            start=at("2025-07-01T00:00"),
            end=at("2025-07-05T00:00"),
            status=Booking.Status.CONFIRMED,
            customer_name="Déjà là",
        )

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(Exception):
                build_booking_service().create_booking(
                    self.chalet.pk,
                    at("2025-07-02T00:00"),
                    at("2025-07-04T00:00"),
                    Customer(name="Marie Tremblay"),
                    status=Booking.Status.CONFIRMED,
                )

        self.assertEqual(callbacks, [])
        gateway.create_event.assert_not_called()

    def test_mirror_failure_leaves_booking_valid(self, build_gateway) -> None:
        build_gateway.return_value.create_event.side_effect = UpstreamUnavailable("timeout")
        booking = Booking.objects.create(
            resource=self.chalet,
            start=at("2025-07-01T00:00"),
            end=at("2025-07-05T00:00"),
            status=Booking.Status.CONFIRMED,
            customer_name="Marie Tremblay",
        )

        self.assertIsNone(mirror_booking_created(str(booking.pk)))

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)
        self.assertIsNone(booking.google_event_id)

    def test_cancelled_booking_event_is_deleted(self, build_gateway) -> None:
        build_gateway.return_value.delete_event.return_value = False
        booking = Booking.objects.create(
            resource=self.chalet,
            start=at("2025-07-01T00:00"),
            end=at("2025-07-05T00:00"),
            status=Booking.Status.CANCELLED,
            customer_name="Marie Tremblay",
            google_event_id="evt-gone",
        )

        self.assertFalse(mirror_booking_cancelled(str(booking.pk), "evt-gone"))
        build_gateway.return_value.delete_event.assert_called_once_with(
            self.connection.pk, "chalets@example.com", "evt-gone"
        )
