"""Tests for the Google access token provider."""

from __future__ import annotations

import uuid
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import connection as db
from django.test import TestCase
from django.urls import reverse
from google.auth.exceptions import RefreshError, TransportError
from rest_framework import status
from rest_framework.test import APITestCase

from apps.calendars.models import CalendarConnection
from apps.calendars.tokens import GoogleTokenProvider
from shared.domain.errors import AuthRequired, ReauthRequired

User = get_user_model()


def _provider() -> GoogleTokenProvider:
    return GoogleTokenProvider(
        client_id="client-id",
        client_secret="client-secret",
        token_uri="https://oauth2.googleapis.com/token",
        ttl=60,
        timeout=5,
    )


def _refresh_sets(token: str):
    def refresh(credentials, request):
        credentials.token = token

    return refresh


class GoogleTokenProviderTests(TestCase):
    def setUp(self) -> None:
        cache.clear()
        self.connection = CalendarConnection.objects.create(label="Guide")
        self.connection.store_refresh_token("refresh-token")
        self.provider = _provider()

    def test_refresh_token_is_encrypted_at_rest(self) -> None:
        with db.cursor() as cursor:
            cursor.execute(
                "SELECT refresh_token FROM calendars_calendarconnection WHERE id = %s",
                [self.connection.pk.hex],
            )
            stored = cursor.fetchone()[0]

        self.assertNotEqual(stored, "refresh-token")
        self.connection.refresh_from_db()
        self.assertEqual(self.connection.refresh_token, "refresh-token")

    def test_access_token_is_cached(self) -> None:
        with mock.patch(
            "google.oauth2.credentials.Credentials.refresh",
            autospec=True,
            side_effect=_refresh_sets("access-1"),
        ) as refresh:
            first = self.provider.get_access_token(self.connection.pk)
            second = self.provider.get_access_token(self.connection.pk)

        self.assertEqual(first.access_token, "access-1")
        self.assertFalse(first.cached)
        self.assertEqual(second.access_token, "access-1")
        self.assertTrue(second.cached)
        self.assertEqual(refresh.call_count, 1)

    def test_invalidate_forces_refresh(self) -> None:
        with mock.patch(
            "google.oauth2.credentials.Credentials.refresh",
            autospec=True,
            side_effect=_refresh_sets("access-2"),
        ) as refresh:
            self.provider.get_access_token(self.connection.pk)
            self.provider.invalidate(self.connection.pk)
            self.provider.get_access_token(self.connection.pk)

        self.assertEqual(refresh.call_count, 2)

    def test_missing_connection_requires_auth(self) -> None:
        with self.assertRaises(AuthRequired):
            self.provider.get_access_token(uuid.uuid4())
        with self.assertRaises(AuthRequired):
            self.provider.get_access_token(None)

    def test_connection_without_token_requires_auth(self) -> None:
        empty = CalendarConnection.objects.create(label="Vide")

        with self.assertRaises(AuthRequired) as ctx:
            self.provider.get_access_token(empty.pk)

        self.assertNotIsInstance(ctx.exception, ReauthRequired)

    def test_invalid_grant_revokes_connection(self) -> None:
        with mock.patch(
            "google.oauth2.credentials.Credentials.refresh",
            side_effect=RefreshError("invalid_grant: Token has been expired or revoked."),
        ):
            with self.assertRaises(ReauthRequired) as ctx:
                self.provider.get_access_token(self.connection.pk)

        self.assertTrue(ctx.exception.to_dict()["requires_reauth"])
        self.connection.refresh_from_db()
        self.assertEqual(self.connection.refresh_token, "")
        self.assertIsNotNone(self.connection.revoked_at)
        self.assertFalse(self.connection.is_connected)

    def test_network_failure_keeps_token(self) -> None:
        with mock.patch(
            "google.oauth2.credentials.Credentials.refresh",
            side_effect=TransportError("connection reset"),
        ):
            with self.assertRaises(AuthRequired) as ctx:
                self.provider.get_access_token(self.connection.pk)

        self.assertNotIsInstance(ctx.exception, ReauthRequired)
        self.connection.refresh_from_db()
        self.assertEqual(self.connection.refresh_token, "refresh-token")

    def test_check_reports_status(self) -> None:
        with mock.patch(
            "google.oauth2.credentials.Credentials.refresh",
            side_effect=RefreshError("invalid_grant"),
        ):
            result = self.provider.check(self.connection.pk)

        self.assertEqual(
            result.to_dict(),
            {
                "connection_id": str(self.connection.pk),
                "valid": False,
                "requires_auth": True,
                "requires_reauth": True,
            },
        )


class ConnectionStatusAPITests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.user = User.objects.create_user(username="jean", password="GuidePass123")
        self.connection = CalendarConnection.objects.create(label="Jean", user=self.user)
        self.connection.store_refresh_token("refresh-token")
        self.url = reverse("calendar-connection-status", args=[self.connection.pk])

    def test_owner_sees_valid_connection(self) -> None:
        self.client.force_authenticate(self.user)

        with mock.patch(
            "google.oauth2.credentials.Credentials.refresh",
            autospec=True,
            side_effect=_refresh_sets("access"),
        ):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["valid"])
        self.assertFalse(response.data["requires_reauth"])

    def test_other_users_are_refused(self) -> None:
        other = User.objects.create_user(username="autre", password="OtherPass123")
        self.client.force_authenticate(other)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
