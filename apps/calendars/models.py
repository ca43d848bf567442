"""Calendar connection model."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore

from shared.infrastructure.fields import EncryptedTextField


class CalendarConnection(models.Model):
    """
    OAuth refresh credential of one calendar owner (establishment or guide).

    The refresh token is encrypted at rest. Access tokens are never stored
    here; the token provider caches them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    label = models.CharField(max_length=255, blank=True)
    account_email = models.EmailField(blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="calendar_connections",
    )
    refresh_token = EncryptedTextField(blank=True)
    token_created_at = models.DateTimeField(null=True, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["label"]

    def __str__(self) -> str:
        return self.label or self.account_email or str(self.id)

    @property
    def is_connected(self) -> bool:
        return bool(self.refresh_token)

    def store_refresh_token(self, refresh_token: str) -> None:
        self.refresh_token = refresh_token
        self.token_created_at = timezone.now()
        self.revoked_at = None
        self.save(update_fields=["refresh_token", "token_created_at", "revoked_at", "updated_at"])

    def revoke(self) -> None:
        """Forget the refresh token; the owner must authorize again."""
        self.refresh_token = ""
        self.revoked_at = timezone.now()
        self.save(update_fields=["refresh_token", "revoked_at", "updated_at"])
