"""
One-way reconciliation of canonical events into a remote calendar.
"""

import logging
import threading

from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import EventOutcome
from tourney_calendar_sync.models import RemoteCalendarError
from tourney_calendar_sync.models import RemoteNotFoundError
from tourney_calendar_sync.models import SourceStats
from tourney_calendar_sync.models import SourceSyncState
from tourney_calendar_sync.models import SyncRecord
from tourney_calendar_sync.models import SyncState
from tourney_calendar_sync.models import SyncStats
from tourney_calendar_sync.remote import RemoteCalendarAdapter
from tourney_calendar_sync.store import SyncStateStore
from tourney_calendar_sync.sync.utils import compute_event_hash
from tourney_calendar_sync.sync.utils import timestamp


def index_events(events: list[CanonicalEvent], logger) -> dict[str, CanonicalEvent]:
    """Key events by id; a repeated id keeps its last occurrence."""
    indexed: dict[str, CanonicalEvent] = {}
    for event in events:
        if event.id in indexed:
            logger.warning(f"Duplicate event id {event.id}; keeping the last occurrence")
        indexed[event.id] = event
    return indexed


class Reconciler:
    """
    Converges one source's remote calendar with its canonical events.

    Every successful remote mutation is applied to the in-memory state
    right away and, with ``checkpoint`` on, persisted before the next
    event is touched.  A crash mid-pass therefore never loses track of a
    remote entry that was already created.
    """

    def __init__(
        self,
        adapter: RemoteCalendarAdapter,
        store: SyncStateStore,
        dry_run: bool = False,
        checkpoint: bool = True,
        logger: logging.Logger | None = None,
    ):
        self.adapter = adapter
        self.store = store
        self.dry_run = dry_run
        self.checkpoint = checkpoint
        self.logger = logger or logging.getLogger(__name__)

    def run(
        self,
        source_id: str,
        events: list[CanonicalEvent],
        invalid_ids: list[str] | None = None,
        cancel: threading.Event | None = None,
    ) -> tuple[SourceSyncState, SyncStats]:
        """Load state, reconcile ``events`` for ``source_id`` and persist."""
        state = self.store.load()
        source_state = state.sources.get(source_id)
        if source_state is None:
            source_state = SourceSyncState(remote_collection_id=self.adapter.collection_id)
            state.sources[source_id] = source_state
        elif (
            source_state.remote_collection_id
            and source_state.remote_collection_id != self.adapter.collection_id
        ):
            self.logger.warning(
                f"[{source_id}] State was recorded against calendar "
                f"{source_state.remote_collection_id}, now syncing to "
                f"{self.adapter.collection_id}; consider running repair"
            )
        stats = self.reconcile(state, source_id, events, invalid_ids, cancel)
        return state.sources[source_id], stats

    def reconcile(
        self,
        state: SyncState,
        source_id: str,
        events: list[CanonicalEvent],
        invalid_ids: list[str] | None = None,
        cancel: threading.Event | None = None,
    ) -> SyncStats:
        """Drive CREATE/UPDATE/SKIP then DELETE for one source.

        ``invalid_ids`` are ids the provider reported but could not parse.
        They are counted, and kept out of orphan deletion so that a
        temporarily malformed entry does not remove its remote copy.
        """
        source_state = state.sources[source_id]
        stats = SyncStats()
        invalid_ids = list(invalid_ids or [])
        for event_id in invalid_ids:
            stats.record(EventOutcome(event_id, "invalid"))

        local = index_events(events, self.logger)
        self.logger.info(f"[{source_id}] Reconciling {len(local)} event(s)")

        # Phase 1: CREATE / UPDATE / SKIP
        for event_id, event in local.items():
            if cancel is not None and cancel.is_set():
                stats.cancelled = True
                break
            outcome = self._reconcile_event(source_id, source_state, event)
            stats.record(outcome)
            if outcome.ok and outcome.action in ("create", "update"):
                self._checkpoint(state)

        # Phase 2: DELETE orphans
        keep = set(local) | set(invalid_ids)
        orphans = [event_id for event_id in source_state.records if event_id not in keep]
        for event_id in orphans:
            if stats.cancelled or (cancel is not None and cancel.is_set()):
                stats.cancelled = True
                break
            outcome = self._delete_orphan(source_id, source_state, event_id)
            stats.record(outcome)
            if outcome.ok:
                self._checkpoint(state)

        if stats.cancelled:
            self.logger.warning(f"[{source_id}] Pass cancelled; progress so far is kept")
        elif not self.dry_run:
            source_state.stats = SourceStats(total_events=len(local), last_update=timestamp())

        if not self.dry_run:
            state.last_sync = timestamp()
            self.store.save(state)

        self.logger.info(
            f"[{source_id}] Created {stats.created}, updated {stats.updated}, "
            f"unchanged {stats.unchanged}, deleted {stats.deleted}, failed {stats.failed}"
        )
        return stats

    # ------------------------------------------------------------------ #
    # Per-event operations                                                 #
    # ------------------------------------------------------------------ #

    def _reconcile_event(
        self, source_id: str, source_state: SourceSyncState, event: CanonicalEvent
    ) -> EventOutcome:
        record = source_state.records.get(event.id)
        event_hash = compute_event_hash(event)

        if record is None:
            return self._create(source_id, source_state, event, event_hash)
        if record.content_hash == event_hash:
            self.logger.debug(f"[{source_id}] Unchanged: {event.name} ({event.id})")
            return EventOutcome(event.id, "skip", remote_id=record.remote_id)
        return self._update(source_id, source_state, event, event_hash, record)

    def _create(
        self,
        source_id: str,
        source_state: SourceSyncState,
        event: CanonicalEvent,
        event_hash: str,
    ) -> EventOutcome:
        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would CREATE {event.name} ({event.id})")
            return EventOutcome(event.id, "create")

        self.logger.info(f"[{source_id}] Creating: {event.name}")
        try:
            remote_id = self.adapter.create(event)
        except RemoteCalendarError as e:
            self.logger.error(f"[{source_id}] Failed to create {event.id}: {e}")
            return EventOutcome(event.id, "create", ok=False, error=str(e))

        source_state.records[event.id] = SyncRecord(
            remote_id=remote_id, content_hash=event_hash, last_synced_at=timestamp()
        )
        return EventOutcome(event.id, "create", remote_id=remote_id)

    def _update(
        self,
        source_id: str,
        source_state: SourceSyncState,
        event: CanonicalEvent,
        event_hash: str,
        record: SyncRecord,
    ) -> EventOutcome:
        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would UPDATE {event.name} ({record.remote_id})")
            return EventOutcome(event.id, "update", remote_id=record.remote_id)

        self.logger.info(f"[{source_id}] Updating: {event.name}")
        remote_id = record.remote_id
        try:
            try:
                self.adapter.update(remote_id, event)
            except RemoteNotFoundError:
                # Deleted on the remote side since the last pass; put it back.
                self.logger.debug(
                    f"[{source_id}] Remote entry {remote_id} is gone; recreating {event.id}"
                )
                remote_id = self.adapter.create(event)
        except RemoteCalendarError as e:
            self.logger.error(f"[{source_id}] Failed to update {event.id}: {e}")
            return EventOutcome(event.id, "update", ok=False, remote_id=record.remote_id, error=str(e))

        record.remote_id = remote_id
        record.content_hash = event_hash
        record.last_synced_at = timestamp()
        return EventOutcome(event.id, "update", remote_id=remote_id)

    def _delete_orphan(
        self, source_id: str, source_state: SourceSyncState, event_id: str
    ) -> EventOutcome:
        record = source_state.records[event_id]
        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would DELETE {event_id} ({record.remote_id})")
            return EventOutcome(event_id, "delete", remote_id=record.remote_id)

        self.logger.info(f"[{source_id}] Deleting: {event_id}")
        try:
            self.adapter.delete(record.remote_id)
        except RemoteNotFoundError:
            self.logger.debug(f"[{source_id}] Remote entry {record.remote_id} already gone")
        except RemoteCalendarError as e:
            self.logger.error(f"[{source_id}] Failed to delete {event_id}: {e}")
            return EventOutcome(event_id, "delete", ok=False, remote_id=record.remote_id, error=str(e))

        del source_state.records[event_id]
        return EventOutcome(event_id, "delete", remote_id=record.remote_id)

    def _checkpoint(self, state: SyncState):
        if self.checkpoint and not self.dry_run:
            state.last_sync = timestamp()
            self.store.save(state)
