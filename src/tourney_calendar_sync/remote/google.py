"""
Google Calendar adapter (Calendar API v3).
"""

import logging
from datetime import timedelta
from pathlib import Path

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError
from googleapiclient.errors import HttpError

from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import RemoteCalendarError
from tourney_calendar_sync.models import RemoteNotFoundError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]

# 404 for ids that never existed, 410 for entries deleted long enough ago.
_NOT_FOUND_STATUSES = frozenset({404, 410})


def _http_status(e: HttpError) -> int | None:
    status = getattr(e, "status_code", None)
    if status is None and getattr(e, "resp", None) is not None:
        status = getattr(e.resp, "status", None)
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


def build_event_body(event: CanonicalEvent) -> dict:
    """Map a canonical event onto a Google Calendar all-day entry.

    Google treats the end date of an all-day entry as exclusive, so the
    last tournament day is pushed one day forward.
    """
    end_exclusive = event.date_end.date() + timedelta(days=1)
    source_title = f"{event.source} Calendar" if event.source else "Tournament Calendar"
    body = {
        "summary": event.name,
        "location": event.location.display(),
        "description": event.description,
        "start": {"date": event.date_start.date().isoformat(), "timeZone": "UTC"},
        "end": {"date": end_exclusive.isoformat(), "timeZone": "UTC"},
        "transparency": "transparent",
        "visibility": "public",
    }
    # The API rejects a source block without a url.
    if event.url:
        body["source"] = {"title": source_title, "url": event.url}
    return body


class GoogleCalendarAdapter:
    """Creates, updates and deletes entries in one Google calendar."""

    def __init__(self, service, calendar_id: str):
        self.service = service
        self.collection_id = calendar_id

    @classmethod
    def from_service_account(cls, credentials_file: Path, calendar_id: str) -> "GoogleCalendarAdapter":
        """Build the API client from a service-account key file."""
        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(Path(credentials_file).expanduser()), scopes=SCOPES
            )
        except (OSError, ValueError) as e:
            raise RemoteCalendarError(
                f"Cannot load Google credentials from {credentials_file}: {e}"
            ) from e
        service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        logger.debug(f"Google Calendar service initialized for {calendar_id}")
        return cls(service, calendar_id)

    def _execute(self, request, remote_id: str | None = None):
        try:
            return request.execute()
        except HttpError as e:
            if _http_status(e) in _NOT_FOUND_STATUSES:
                raise RemoteNotFoundError(f"Google event {remote_id} not found") from e
            raise RemoteCalendarError(f"Google Calendar API error: {e}") from e
        except (GoogleApiError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
            raise RemoteCalendarError(f"Google Calendar request failed: {e}") from e

    def create(self, event: CanonicalEvent) -> str:
        request = self.service.events().insert(
            calendarId=self.collection_id, body=build_event_body(event)
        )
        response = self._execute(request)
        remote_id = (response or {}).get("id")
        if not remote_id:
            raise RemoteCalendarError(f"Google Calendar returned no id for {event.id}")
        return remote_id

    def update(self, remote_id: str, event: CanonicalEvent) -> None:
        request = self.service.events().update(
            calendarId=self.collection_id, eventId=remote_id, body=build_event_body(event)
        )
        self._execute(request, remote_id)

    def delete(self, remote_id: str) -> None:
        request = self.service.events().delete(calendarId=self.collection_id, eventId=remote_id)
        self._execute(request, remote_id)

    def exists(self, remote_id: str) -> bool:
        """Return False only when Google confirms the entry is gone."""
        request = self.service.events().get(calendarId=self.collection_id, eventId=remote_id)
        try:
            response = self._execute(request, remote_id)
        except RemoteNotFoundError:
            return False
        # Deleted entries stay fetchable for a while with status "cancelled".
        return (response or {}).get("status") != "cancelled"
