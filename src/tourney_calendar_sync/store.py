"""
JSON state persistence for calendar sync tracking.
"""

import json
import logging
import os
import time
from pathlib import Path

from tourney_calendar_sync.models import SCHEMA_VERSION
from tourney_calendar_sync.models import SourceStats
from tourney_calendar_sync.models import SourceSyncState
from tourney_calendar_sync.models import StateStoreError
from tourney_calendar_sync.models import SyncRecord
from tourney_calendar_sync.models import SyncState

logger = logging.getLogger(__name__)


class SyncStateStore:
    """Loads and saves the whole sync state document.

    The document is always replaced wholesale.  Only one pass may write to
    a given store at a time; nothing here locks across processes.
    """

    def __init__(
        self,
        path: Path,
        retries: int = 3,
        backoff: float = 1.0,
        sleep=time.sleep,
    ):
        self.path = Path(path)
        self.retries = max(1, retries)
        self.backoff = backoff
        self._sleep = sleep

    def load(self) -> SyncState:
        """Return the persisted state, or an empty one on first run."""
        if not self.path.exists():
            logger.info(f"Sync state file {self.path} not found, starting with empty state")
            return SyncState()

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise StateStoreError(f"Cannot read sync state {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateStoreError(f"Sync state {self.path} is not a JSON object")

        try:
            if "sports" in data and "sources" not in data:
                return migrate_legacy_document(data)
            return SyncState.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StateStoreError(f"Sync state {self.path} has an unexpected layout: {e!r}") from e

    def save(self, state: SyncState):
        """
        Write the full document, retrying transient failures.

        Each attempt writes a sibling temp file and renames it over the
        target so a reader never sees a half-written document.  After the
        last attempt fails the error is raised as StateStoreError.
        """
        payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        for attempt in range(1, self.retries + 1):
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open("w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self.path)
                return
            except OSError as e:
                if attempt == self.retries:
                    logger.error(f"Error saving sync state to {self.path}: {e}")
                    raise StateStoreError(
                        f"Failed to save sync state after {self.retries} attempts: {e}"
                    ) from e
                logger.warning(
                    f"Sync state save failed (attempt {attempt}/{self.retries}), retrying..."
                )
                self._sleep(self.backoff * attempt)


def migrate_legacy_document(data: dict) -> SyncState:
    """
    Convert a version 1.0 state document into the current layout.

    The old layout kept one entry per sport under ``sports``, each with a
    ``calendarId`` and ``events`` of ``{googleEventId, lastSynced, hash}``.
    Entries without a remote id cannot be tracked and are dropped.
    """
    state = SyncState(version=SCHEMA_VERSION, last_sync=data.get("lastSync"))
    kept = dropped = 0

    for source_id, sport in (data.get("sports") or {}).items():
        source = SourceSyncState(remote_collection_id=str(sport.get("calendarId") or ""))
        for event_id, event in (sport.get("events") or {}).items():
            remote_id = event.get("googleEventId")
            if not remote_id:
                dropped += 1
                continue
            source.records[str(event_id)] = SyncRecord(
                remote_id=str(remote_id),
                content_hash=str(event.get("hash") or ""),
                last_synced_at=str(event.get("lastSynced") or ""),
            )
            kept += 1
        stats = sport.get("stats") or {}
        source.stats = SourceStats(
            total_events=int(stats.get("totalEvents") or 0),
            last_update=stats.get("lastUpdate"),
        )
        state.sources[str(source_id)] = source

    logger.info(
        f"Migrated legacy sync state: kept {kept} record(s), dropped {dropped} without a remote id"
    )
    return state
