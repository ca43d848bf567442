"""Tests for the resource API: browsing, availability and reconcile triggers."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest import mock
from zoneinfo import ZoneInfo

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.calendars.external import ExternalEvent
from apps.calendars.models import CalendarConnection
from apps.resources.models import Chalet, Establishment, Guide, Resource
from shared.domain.errors import UpstreamUnavailable

User = get_user_model()
MONTREAL = ZoneInfo("America/Montreal")


class ResourceAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(username="pourvoirie", password="OwnerPass123")
        self.connection = CalendarConnection.objects.create(label="Pourvoirie", refresh_token="refresh")
        self.establishment = Establishment.objects.create(
            name="Pourvoirie du Lac",
            owner=self.owner,
            calendar_connection=self.connection,
        )
        self.chalet = Chalet.objects.create(
            establishment=self.establishment,
            name="Chalet Huard",
            capacity=6,
            nightly_price=Decimal("250.00"),
        )
        self.guide_user = User.objects.create_user(username="jean", password="GuidePass123")
        self.guide = Guide.objects.create(
            name="Jean Pêcheur",
            user=self.guide_user,
            calendar_id="guide@example.com",
            availability_calendar_id="dispo@example.com",
            calendar_connection=self.connection,
            hourly_rate=Decimal("80.00"),
        )
        Booking.objects.create(
            resource=self.chalet,
            start=datetime(2025, 7, 1, tzinfo=MONTREAL),
            end=datetime(2025, 7, 5, tzinfo=MONTREAL),
            status=Booking.Status.CONFIRMED,
            customer_name="Marie Tremblay",
        )

    def test_list_resources_filters_by_kind(self) -> None:
        response = self.client.get(reverse("resource-list"), {"kind": Resource.Kind.GUIDE})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        results = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual([item["id"] for item in results], [str(self.guide.id)])
        self.assertEqual(results[0]["details"]["hourly_rate"], "80.00")
        self.assertNotIn("calendar_id", results[0])

    def test_chalet_availability(self) -> None:
        url = reverse("resource-availability", args=[self.chalet.id])

        busy = self.client.get(url, {"start": "2025-07-03", "end": "2025-07-07"})
        free = self.client.get(url, {"start": "2025-07-05", "end": "2025-07-08"})

        self.assertEqual(busy.status_code, status.HTTP_200_OK, busy.data)
        self.assertFalse(busy.data["available"])
        self.assertEqual(busy.data["reason"], "local conflict")
        self.assertEqual(len(busy.data["conflicts"]), 1)
        self.assertTrue(free.data["available"])

    def test_availability_rejects_bad_dates(self) -> None:
        url = reverse("resource-availability", args=[self.chalet.id])

        response = self.client.get(url, {"start": "demain", "end": "2025-07-08"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("start", response.data)

    @mock.patch("apps.bookings.factories.build_gateway")
    def test_guide_availability_degrades_when_calendar_is_down(self, build_gateway) -> None:
        build_gateway.return_value.list_events.side_effect = UpstreamUnavailable("timeout")
        url = reverse("resource-availability", args=[self.guide.id])

        response = self.client.get(url, {"start": "2025-08-01T09:00", "end": "2025-08-01T17:00"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["available"])
        self.assertTrue(response.data["degraded"])

    @mock.patch("apps.bookings.factories.build_gateway")
    def test_open_slots(self, build_gateway) -> None:
        build_gateway.return_value.list_events.return_value = [
            ExternalEvent(
                id="slot-1",
                start=datetime(2025, 8, 1, 6, tzinfo=MONTREAL),
                end=datetime(2025, 8, 1, 12, tzinfo=MONTREAL),
                summary="Disponible",
            ),
            ExternalEvent(
                id="other",
                start=datetime(2025, 8, 2, 6, tzinfo=MONTREAL),
                end=datetime(2025, 8, 2, 12, tzinfo=MONTREAL),
                summary="Dentiste",
            ),
        ]
        url = reverse("resource-open-slots", args=[self.guide.id])

        response = self.client.get(url, {"start": "2025-08-01", "end": "2025-08-03"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual([slot["id"] for slot in response.data["slots"]], ["slot-1"])

    def test_open_slots_for_chalet_is_rejected(self) -> None:
        url = reverse("resource-open-slots", args=[self.chalet.id])

        response = self.client.get(url, {"start": "2025-08-01", "end": "2025-08-03"})

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "calendar_not_linked")

    def test_reconcile_requires_owner(self) -> None:
        url = reverse("resource-reconcile", args=[self.guide.id])

        anonymous = self.client.post(url)
        self.client.force_authenticate(self.owner)
        not_owner = self.client.post(url)

        self.assertIn(anonymous.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
        self.assertEqual(not_owner.status_code, status.HTTP_403_FORBIDDEN)

    @mock.patch("apps.bookings.factories.build_gateway")
    def test_guide_triggers_reconcile(self, build_gateway) -> None:
        build_gateway.return_value.list_events.return_value = []
        self.client.force_authenticate(self.guide_user)

        response = self.client.post(reverse("resource-reconcile", args=[self.guide.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["resource_id"], str(self.guide.id))
        self.assertEqual(response.data["errors"], [])
        self.assertIsNotNone(response.data["synced_at"])

    def test_reconcile_unlinked_chalet(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("resource-reconcile", args=[self.chalet.id]))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "calendar_not_linked")
