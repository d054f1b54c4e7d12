"""
Evolution Data Server calendar adapter.
"""

import uuid
from datetime import timedelta
from typing import Optional

import gi

gi.require_version("EDataServer", "1.2")
gi.require_version("ECal", "2.0")
gi.require_version("ICalGLib", "3.0")
from gi.repository import ECal
from gi.repository import EDataServer
from gi.repository import GLib
from gi.repository import ICalGLib

from tourney_calendar_sync.models import CalendarSyncError
from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import RemoteCalendarError
from tourney_calendar_sync.models import RemoteNotFoundError

# Marks entries written by this tool so they can be told apart from
# anything the user added to the same calendar by hand.
MANAGED_CATEGORY = "TOURNEY-CALENDAR-SYNC"

# E_CAL_CLIENT_ERROR_OBJECT_NOT_FOUND = 1  (from e-cal-client-error-quark)
_EDS_NOT_FOUND_CODE = 1
_EDS_CLIENT_ERROR_DOMAIN = "e-cal-client-error-quark"

# The M365 backend embeds the Exchange EWS error name in the message.
_M365_ERROR_DOMAIN = "e-m365-error-quark"
_M365_NOT_FOUND_MSG = "ErrorItemNotFound"


def is_not_found_error(e: Exception) -> bool:
    """Return True when EDS reports that a calendar object does not exist."""
    if isinstance(e, GLib.Error):
        domain = e.domain or ""
        if e.code == _EDS_NOT_FOUND_CODE and _EDS_CLIENT_ERROR_DOMAIN in domain:
            return True
        if _M365_ERROR_DOMAIN in domain and _M365_NOT_FOUND_MSG in (e.message or ""):
            return True
    return "object not found" in str(e).lower()


def _escape_text(value: str) -> str:
    """Escape a TEXT value for an iCal content line (RFC 5545 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def build_component(event: CanonicalEvent, uid: str) -> ICalGLib.Component:
    """Build an all-day VEVENT for a canonical event.

    DTEND of an all-day VEVENT is exclusive, so it is the day after the
    last tournament day.
    """
    end_exclusive = event.date_end.date() + timedelta(days=1)
    lines = [
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"SUMMARY:{_escape_text(event.name)}",
        f"DTSTART;VALUE=DATE:{event.date_start.strftime('%Y%m%d')}",
        f"DTEND;VALUE=DATE:{end_exclusive.strftime('%Y%m%d')}",
        "TRANSP:TRANSPARENT",
        "CLASS:PUBLIC",
        f"CATEGORIES:{MANAGED_CATEGORY}",
    ]
    location = event.location.display()
    if location:
        lines.append(f"LOCATION:{_escape_text(location)}")
    if event.description:
        lines.append(f"DESCRIPTION:{_escape_text(event.description)}")
    if event.url:
        lines.append(f"URL:{event.url}")
    lines.append("END:VEVENT")
    return ICalGLib.Component.new_from_string("\r\n".join(lines) + "\r\n")


class EDSCalendarAdapter:
    """Wrapper for Evolution Data Server calendar operations."""

    def __init__(self, registry: EDataServer.SourceRegistry, calendar_uid: str):
        self.registry = registry
        self.collection_id = calendar_uid
        self.client: Optional[ECal.Client] = None

    @classmethod
    def from_registry(cls, calendar_uid: str) -> "EDSCalendarAdapter":
        try:
            registry = EDataServer.SourceRegistry.new_sync(None)
        except GLib.Error as e:
            raise CalendarSyncError(f"EDS registry unreachable: {e.message}") from e
        return cls(registry, calendar_uid)

    def connect(self, timeout: int = 10):
        """Connect to the configured calendar in EDS."""
        source = self.registry.ref_source(self.collection_id)
        if not source:
            raise CalendarSyncError(f"Calendar with UID '{self.collection_id}' not found in EDS")

        try:
            self.client = ECal.Client.connect_sync(
                source, ECal.ClientSourceType.EVENTS, timeout, None
            )
        except GLib.Error as e:
            raise CalendarSyncError(
                f"Failed to connect to calendar {self.collection_id}: {e.message}"
            ) from e

    def _require_client(self) -> ECal.Client:
        if not self.client:
            raise RemoteCalendarError("Client not connected")
        return self.client

    def create(self, event: CanonicalEvent) -> str:
        client = self._require_client()
        uid = str(uuid.uuid4())
        try:
            success, out_uid = client.create_object_sync(
                build_component(event, uid), ECal.OperationFlags.NONE, None
            )
        except GLib.Error as e:
            raise RemoteCalendarError(f"Failed to create event {event.id}: {e.message}") from e
        if not success:
            raise RemoteCalendarError(f"Failed to create event {event.id}")
        # Some backends (Microsoft 365) rewrite the UID; keep what they return.
        return out_uid or uid

    def update(self, remote_id: str, event: CanonicalEvent) -> None:
        client = self._require_client()
        try:
            success = client.modify_object_sync(
                build_component(event, remote_id),
                ECal.ObjModType.THIS,
                ECal.OperationFlags.NONE,
                None,
            )
        except GLib.Error as e:
            if is_not_found_error(e):
                raise RemoteNotFoundError(f"EDS event {remote_id} not found") from e
            raise RemoteCalendarError(f"Failed to modify event {remote_id}: {e.message}") from e
        if not success:
            raise RemoteCalendarError(f"Failed to modify event {remote_id}")

    def delete(self, remote_id: str) -> None:
        client = self._require_client()
        try:
            success = client.remove_object_sync(
                remote_id,
                None,  # rid (recurrence-id)
                ECal.ObjModType.THIS,
                ECal.OperationFlags.NONE,
                None,  # cancellable
            )
        except GLib.Error as e:
            if is_not_found_error(e):
                raise RemoteNotFoundError(f"EDS event {remote_id} not found") from e
            raise RemoteCalendarError(f"Failed to remove event {remote_id}: {e.message}") from e
        if not success:
            raise RemoteCalendarError(f"Failed to remove event {remote_id}")

    def exists(self, remote_id: str) -> bool:
        client = self._require_client()
        try:
            success, icalcomp = client.get_object_sync(remote_id, None, None)
        except GLib.Error as e:
            if is_not_found_error(e):
                return False
            raise RemoteCalendarError(f"Failed to look up event {remote_id}: {e.message}") from e
        return bool(success and icalcomp)
