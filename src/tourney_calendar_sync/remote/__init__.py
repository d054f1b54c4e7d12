"""
Remote calendar adapters and the table that resolves them by name.
"""

from typing import Callable
from typing import Protocol

from tourney_calendar_sync.models import CalendarSyncError
from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import SourceConfig
from tourney_calendar_sync.models import SyncConfig


class RemoteCalendarAdapter(Protocol):
    """Operations the reconciler needs from a remote calendar.

    Implementations raise RemoteNotFoundError when the remote side
    definitively reports an entry missing and RemoteCalendarError for any
    other failure.
    """

    collection_id: str

    def create(self, event: CanonicalEvent) -> str: ...

    def update(self, remote_id: str, event: CanonicalEvent) -> None: ...

    def delete(self, remote_id: str) -> None: ...

    def exists(self, remote_id: str) -> bool: ...


AdapterFactory = Callable[[SyncConfig, SourceConfig], RemoteCalendarAdapter]


def _google_factory(config: SyncConfig, source: SourceConfig) -> RemoteCalendarAdapter:
    from tourney_calendar_sync.remote.google import GoogleCalendarAdapter

    if not config.google_credentials:
        raise CalendarSyncError("google adapter requires google_credentials in the config")
    if not source.calendar_id:
        raise CalendarSyncError(f"Source '{source.source_id}' has no calendar_id")
    return GoogleCalendarAdapter.from_service_account(config.google_credentials, source.calendar_id)


def _eds_factory(config: SyncConfig, source: SourceConfig) -> RemoteCalendarAdapter:
    from tourney_calendar_sync.remote.eds import EDSCalendarAdapter

    calendar_uid = source.calendar_id or config.eds_calendar_id
    if not calendar_uid:
        raise CalendarSyncError(f"Source '{source.source_id}' has no EDS calendar_id")
    adapter = EDSCalendarAdapter.from_registry(calendar_uid)
    adapter.connect()
    return adapter


# Imports of the backing libraries are deferred to the factories so that a
# machine without PyGObject can still run the google adapter.
ADAPTERS: dict[str, AdapterFactory] = {
    "google": _google_factory,
    "eds": _eds_factory,
}


def create_adapter(config: SyncConfig, source: SourceConfig) -> RemoteCalendarAdapter:
    """Build the configured adapter for one source."""
    try:
        factory = ADAPTERS[config.adapter]
    except KeyError:
        known = ", ".join(sorted(ADAPTERS))
        raise CalendarSyncError(
            f"Unknown calendar adapter '{config.adapter}' (known: {known})"
        ) from None
    return factory(config, source)
