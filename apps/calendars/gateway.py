"""Google Calendar gateway.

Thin adapter over the Calendar v3 API. Every call authenticates with an
access token from the injected ``TokenProvider`` and is bounded by the
configured HTTP timeout. Google failures are translated into the domain
error taxonomy so callers never handle ``HttpError`` themselves:

- 401/403 -> AuthRequired (the cached token is dropped first)
- 404 on list/update -> NotFound; 404/410 on delete -> already gone
- 429, 5xx, timeouts and transport failures -> UpstreamUnavailable
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import httplib2
from django.conf import settings  # type: ignore
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from shared.domain.errors import AuthRequired, NotFound, UpstreamUnavailable

from .external import ExternalEvent
from .tokens import TokenProvider

logger = logging.getLogger(__name__)

PAGE_SIZE = 250
MAX_EVENTS = 2500


def _build_service(access_token: str, timeout: float):
    credentials = Credentials(token=access_token)
    http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    return build("calendar", "v3", http=http, cache_discovery=False)


class CalendarGateway:
    """list/create/update/delete events on one owner's calendars."""

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        timeout: float = 10,
        time_zone: str = "America/Montreal",
        service_factory: Callable[[str, float], Any] = _build_service,
    ):
        self.token_provider = token_provider
        self.timeout = timeout
        self.time_zone = time_zone
        self._service_factory = service_factory

    @classmethod
    def from_settings(cls, token_provider: TokenProvider) -> "CalendarGateway":
        return cls(
            token_provider,
            timeout=settings.CALENDAR_HTTP_TIMEOUT,
            time_zone=settings.CALENDAR_TIME_ZONE,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list_events(
        self,
        owner_id,
        calendar_id: str,
        start: datetime,
        end: datetime,
        *,
        show_deleted: bool = False,
    ) -> list[ExternalEvent]:
        """Events intersecting [start, end), recurring events expanded."""
        service = self._service(owner_id)
        events: list[ExternalEvent] = []
        page_token: Optional[str] = None

        while True:
            response = self._execute(
                owner_id,
                service.events().list(
                    calendarId=calendar_id,
                    timeMin=start.isoformat(),
                    timeMax=end.isoformat(),
                    singleEvents=True,
                    orderBy="startTime",
                    showDeleted=show_deleted,
                    maxResults=PAGE_SIZE,
                    pageToken=page_token,
                ),
                action=f"list events of {calendar_id}",
            )
            for item in response.get("items", []):
                events.append(ExternalEvent.from_api(item, self.time_zone))

            page_token = response.get("nextPageToken")
            if not page_token:
                break
            if len(events) >= MAX_EVENTS:
                logger.warning(f"Stopped paging {calendar_id} after {len(events)} events")
                break

        logger.debug(f"Fetched {len(events)} events from {calendar_id}")
        return events

    def create_event(self, owner_id, calendar_id: str, body: Mapping[str, Any]) -> str:
        """Insert an event and return its id."""
        service = self._service(owner_id)
        created = self._execute(
            owner_id,
            service.events().insert(calendarId=calendar_id, body=dict(body)),
            action=f"create event in {calendar_id}",
        )
        logger.info(f"Created event {created['id']} in {calendar_id}")
        return created["id"]

    def update_event(self, owner_id, calendar_id: str, event_id: str, changes: Mapping[str, Any]) -> None:
        """Patch only the given fields of an existing event."""
        service = self._service(owner_id)
        self._execute(
            owner_id,
            service.events().patch(calendarId=calendar_id, eventId=event_id, body=dict(changes)),
            action=f"update event {event_id}",
        )
        logger.info(f"Updated event {event_id} in {calendar_id}")

    def delete_event(self, owner_id, calendar_id: str, event_id: str) -> bool:
        """Delete an event. Returns False when it was already gone."""
        service = self._service(owner_id)
        try:
            self._execute(
                owner_id,
                service.events().delete(calendarId=calendar_id, eventId=event_id),
                action=f"delete event {event_id}",
            )
        except NotFound:
            logger.info(f"Event {event_id} was already deleted from {calendar_id}")
            return False
        logger.info(f"Deleted event {event_id} from {calendar_id}")
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _service(self, owner_id):
        token = self.token_provider.get_access_token(owner_id)
        return self._service_factory(token.access_token, self.timeout)

    def _execute(self, owner_id, request, *, action: str) -> dict:
        try:
            return request.execute() or {}
        except HttpError as exc:
            raise self._translate(owner_id, exc, action) from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            logger.warning(f"Calendar request failed to {action}: {exc}")
            raise UpstreamUnavailable(f"Could not {action}: {exc}") from exc

    def _translate(self, owner_id, exc: HttpError, action: str) -> Exception:
        status = exc.resp.status
        logger.warning(f"Google Calendar returned {status} trying to {action}")
        if status in (401, 403):
            if hasattr(self.token_provider, "invalidate"):
                self.token_provider.invalidate(owner_id)
            return AuthRequired(f"Calendar refused to {action} ({status}).")
        if status in (404, 410):
            return NotFound(f"Calendar could not {action}: not found.")
        return UpstreamUnavailable(f"Calendar failed to {action} ({status}).")
