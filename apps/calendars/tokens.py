"""Access tokens for the Google Calendar API.

Owners (establishments and guides) authorize once; their refresh token is
kept on ``CalendarConnection``. ``GoogleTokenProvider`` exchanges it for a
short-lived access token and caches that token per connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings  # type: ignore
from django.core.cache import cache as default_cache  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from shared.domain.errors import AuthRequired, ReauthRequired

from .models import CalendarConnection

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    cached: bool = False


@dataclass(frozen=True)
class ConnectionStatus:
    connection_id: str
    valid: bool
    requires_auth: bool = False
    requires_reauth: bool = False

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "valid": self.valid,
            "requires_auth": self.requires_auth,
            "requires_reauth": self.requires_reauth,
        }


class TokenProvider:
    """Hands out a usable access token for a calendar owner."""

    def get_access_token(self, owner_id) -> AccessToken:
        raise NotImplementedError


class _TimeoutRequest(Request):
    """google-auth transport whose calls default to a bounded timeout."""

    def __init__(self, timeout: float, session: Optional[requests.Session] = None):
        super().__init__(session=session)
        self._timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):  # type: ignore
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self._timeout,
            **kwargs,
        )


class GoogleTokenProvider(TokenProvider):
    """
    Refresh-token based provider.

    - A cached access token is returned as is (``cached=True``).
    - A missing connection or refresh token raises ``AuthRequired``.
    - ``invalid_grant`` from the token endpoint means the owner revoked access
      or the token expired: the stored refresh token is cleared and
      ``ReauthRequired`` is raised.
    - Network trouble while refreshing raises ``AuthRequired`` since it may
      be transient.
    """

    cache_key_prefix = "calendars:access-token"

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        token_uri: str,
        cache=default_cache,
        ttl: int = 3300,
        timeout: float = 10,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri
        self.cache = cache
        self.ttl = ttl
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "GoogleTokenProvider":
        return cls(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            token_uri=settings.GOOGLE_TOKEN_URI,
            ttl=settings.CALENDAR_ACCESS_TOKEN_TTL,
            timeout=settings.CALENDAR_HTTP_TIMEOUT,
        )

    def cache_key(self, owner_id) -> str:
        return f"{self.cache_key_prefix}:{owner_id}"

    def get_access_token(self, owner_id) -> AccessToken:
        if owner_id is None:
            raise AuthRequired("No calendar connection is configured for this owner.")

        token = self.cache.get(self.cache_key(owner_id))
        if token:
            return AccessToken(access_token=token, cached=True)

        connection = self._load_connection(owner_id)
        token = self._refresh(connection)
        self.cache.set(self.cache_key(owner_id), token, self.ttl)
        return AccessToken(access_token=token, cached=False)

    def invalidate(self, owner_id) -> None:
        self.cache.delete(self.cache_key(owner_id))

    def check(self, owner_id) -> ConnectionStatus:
        """Exchange the refresh token now, bypassing the cache."""
        self.invalidate(owner_id)
        try:
            self.get_access_token(owner_id)
        except ReauthRequired:
            return ConnectionStatus(str(owner_id), valid=False, requires_auth=True, requires_reauth=True)
        except AuthRequired:
            return ConnectionStatus(str(owner_id), valid=False, requires_auth=True)
        return ConnectionStatus(str(owner_id), valid=True)

    def _load_connection(self, owner_id) -> CalendarConnection:
        try:
            connection = CalendarConnection.objects.get(pk=owner_id)
        except (CalendarConnection.DoesNotExist, ValidationError) as exc:
            raise AuthRequired(f"Calendar connection {owner_id} does not exist.") from exc
        if not connection.refresh_token:
            raise AuthRequired(f"Calendar connection {owner_id} has no refresh token.")
        return connection

    def _refresh(self, connection: CalendarConnection) -> str:
        credentials = Credentials(
            token=None,
            refresh_token=connection.refresh_token,
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_uri=self.token_uri,
            scopes=SCOPES,
        )
        try:
            credentials.refresh(_TimeoutRequest(self.timeout))
        except RefreshError as exc:
            if "invalid_grant" in str(exc):
                logger.warning(f"Refresh token for connection {connection.pk} was rejected; clearing it")
                connection.revoke()
                raise ReauthRequired() from exc
            logger.warning(f"Token refresh failed for connection {connection.pk}: {exc}")
            raise AuthRequired(f"Token refresh failed: {exc}") from exc
        except TransportError as exc:
            logger.warning(f"Token endpoint unreachable for connection {connection.pk}: {exc}")
            raise AuthRequired("Token endpoint unreachable.") from exc

        logger.debug(f"Refreshed access token for connection {connection.pk}")
        return credentials.token
