"""
Pure data models — no remote-calendar or filesystem imports.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import date
from datetime import datetime
from datetime import time
from datetime import timezone
from pathlib import Path

DEFAULT_STATE_FILE = Path.home() / ".local/share/tourney-calendar-sync/sync-state.json"
DEFAULT_CONFIG = Path.home() / ".config/tourney-calendar-sync.conf"

SCHEMA_VERSION = "2.0"


class CalendarSyncError(Exception):
    """Base exception for calendar sync errors."""

    pass


class StateStoreError(CalendarSyncError):
    """The sync state document could not be read or written."""

    pass


class ProviderError(CalendarSyncError):
    """Canonical events for a source could not be loaded."""

    pass


class RemoteCalendarError(CalendarSyncError):
    """A remote calendar operation failed (transport, auth, quota, ...)."""

    pass


class RemoteNotFoundError(RemoteCalendarError):
    """The remote calendar definitively reports the entry does not exist."""

    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_utc(value) -> datetime | None:
    """Parse a date or datetime into an aware UTC datetime.

    Accepts bare dates (``2025-01-07``), space-separated datetimes
    (``2025-01-07 00:00:00``) and ISO 8601 with ``Z`` or an offset.
    Naive values are taken as UTC.  Raises ValueError on garbage.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Location:
    city: str = ""
    country: str = ""
    venue: str = ""

    @classmethod
    def from_dict(cls, data) -> "Location":
        if not isinstance(data, dict):
            return cls()
        return cls(
            city=str(data.get("city") or ""),
            country=str(data.get("country") or ""),
            venue=str(data.get("venue") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"city": self.city, "country": self.country, "venue": self.venue}

    def display(self) -> str:
        """Human-readable ``venue, city, country`` with empty parts dropped."""
        return ", ".join(part for part in (self.venue, self.city, self.country) if part)


@dataclass(frozen=True)
class CanonicalEvent:
    """Source-agnostic tournament event, produced fresh on every run."""

    id: str
    name: str
    date_start: datetime
    date_end: datetime
    location: Location = field(default_factory=Location)
    category: str = ""
    level: str = ""
    prize: str = ""
    url: str = ""
    description: str = ""
    source: str = ""
    last_updated: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalEvent":
        """Build an event from its JSON form.

        Raises ValueError when the id or either temporal field is missing or
        unparseable, or when the start falls after the end.
        """
        event_id = str(data.get("id") or "").strip()
        if not event_id:
            raise ValueError("event has no id")
        date_start = parse_utc(data.get("dateStart"))
        date_end = parse_utc(data.get("dateEnd"))
        if date_start is None or date_end is None:
            raise ValueError(f"event {event_id} is missing dateStart/dateEnd")
        if date_start > date_end:
            raise ValueError(f"event {event_id} starts after it ends")
        return cls(
            id=event_id,
            name=str(data.get("name") or ""),
            date_start=date_start,
            date_end=date_end,
            location=Location.from_dict(data.get("location")),
            category=str(data.get("category") or ""),
            level=str(data.get("level") or ""),
            prize=str(data.get("prize") or ""),
            url=str(data.get("url") or ""),
            description=str(data.get("description") or ""),
            source=str(data.get("source") or ""),
            last_updated=parse_utc(data.get("lastUpdated")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "dateStart": format_utc(self.date_start),
            "dateEnd": format_utc(self.date_end),
            "location": self.location.to_dict(),
            "category": self.category,
            "level": self.level,
            "prize": self.prize,
            "url": self.url,
            "description": self.description,
            "source": self.source,
            "lastUpdated": format_utc(self.last_updated),
        }


@dataclass
class SyncRecord:
    """Mapping from one canonical event to the remote entry created for it."""

    remote_id: str
    content_hash: str
    last_synced_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "SyncRecord":
        return cls(
            remote_id=str(data["remoteId"]),
            content_hash=str(data.get("contentHash") or ""),
            last_synced_at=str(data.get("lastSyncedAt") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "remoteId": self.remote_id,
            "lastSyncedAt": self.last_synced_at,
            "contentHash": self.content_hash,
        }


@dataclass
class SourceStats:
    total_events: int = 0
    last_update: str | None = None


@dataclass
class SourceSyncState:
    remote_collection_id: str = ""
    records: dict[str, SyncRecord] = field(default_factory=dict)
    stats: SourceStats = field(default_factory=SourceStats)

    @classmethod
    def from_dict(cls, data: dict) -> "SourceSyncState":
        stats = data.get("stats") or {}
        return cls(
            remote_collection_id=str(data.get("remoteCollectionId") or ""),
            records={
                str(event_id): SyncRecord.from_dict(record)
                for event_id, record in (data.get("records") or {}).items()
            },
            stats=SourceStats(
                total_events=int(stats.get("totalEvents") or 0),
                last_update=stats.get("lastUpdate"),
            ),
        )

    def to_dict(self) -> dict:
        return {
            "remoteCollectionId": self.remote_collection_id,
            "records": {event_id: rec.to_dict() for event_id, rec in self.records.items()},
            "stats": {
                "totalEvents": self.stats.total_events,
                "lastUpdate": self.stats.last_update,
            },
        }


@dataclass
class SyncState:
    """Root of the persisted sync document."""

    version: str = SCHEMA_VERSION
    last_sync: str | None = None
    sources: dict[str, SourceSyncState] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "SyncState":
        return cls(
            version=str(data.get("version") or SCHEMA_VERSION),
            last_sync=data.get("lastSync"),
            sources={
                str(source_id): SourceSyncState.from_dict(source)
                for source_id, source in (data.get("sources") or {}).items()
            },
        )

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "lastSync": self.last_sync,
            "sources": {source_id: src.to_dict() for source_id, src in self.sources.items()},
        }


@dataclass
class SourceConfig:
    """Per-source settings from a ``[source:<id>]`` config section."""

    source_id: str
    events_file: Path
    calendar_id: str = ""


@dataclass
class SyncConfig:
    """Configuration for a sync operation."""

    state_file: Path
    adapter: str = "google"
    sources: dict[str, SourceConfig] = field(default_factory=dict)
    dry_run: bool = False
    checkpoint: bool = True
    save_retries: int = 3
    save_backoff: float = 1.0
    google_credentials: Path | None = None
    eds_calendar_id: str = ""
    verbose: bool = False
    yes: bool = False  # Auto-confirm without prompting


@dataclass
class EventOutcome:
    """Result of a single per-event operation within a pass."""

    event_id: str
    action: str  # 'create', 'update', 'skip', 'delete', 'invalid'
    ok: bool = True
    remote_id: str | None = None
    error: str | None = None


@dataclass
class SyncStats:
    """Statistics for one reconciliation pass."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    failed: int = 0
    invalid: int = 0
    cancelled: bool = False
    outcomes: list[EventOutcome] = field(default_factory=list)

    def record(self, outcome: EventOutcome) -> None:
        self.outcomes.append(outcome)
        if not outcome.ok:
            self.failed += 1
        elif outcome.action == "create":
            self.created += 1
        elif outcome.action == "update":
            self.updated += 1
        elif outcome.action == "skip":
            self.unchanged += 1
        elif outcome.action == "delete":
            self.deleted += 1
        elif outcome.action == "invalid":
            self.invalid += 1

    @property
    def failures(self) -> list[EventOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def summary(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "deleted": self.deleted,
            "failed": self.failed,
        }


@dataclass
class RepairResult:
    repaired: int = 0
    total: int = 0
    unverified: int = 0
