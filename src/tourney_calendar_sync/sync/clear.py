"""
Clear operation — remove every synced entry of a source from its calendar.
"""

from tourney_calendar_sync.models import EventOutcome
from tourney_calendar_sync.models import RemoteCalendarError
from tourney_calendar_sync.models import RemoteNotFoundError
from tourney_calendar_sync.models import SyncStats
from tourney_calendar_sync.remote import RemoteCalendarAdapter
from tourney_calendar_sync.store import SyncStateStore


def perform_clear(
    source_id: str,
    adapter: RemoteCalendarAdapter,
    store: SyncStateStore,
    logger,
    dry_run: bool = False,
) -> SyncStats:
    """Delete the remote entries tracked for a source and forget them.

    Entries that fail to delete keep their record, so a later clear or
    sync can still reach them.  Entries the calendar no longer has are
    forgotten as if deleted.
    """
    logger.warning(f"[{source_id}] CLEAR MODE: Removing synced events...")
    stats = SyncStats()
    state = store.load()
    source_state = state.sources.get(source_id)

    if source_state is None or not source_state.records:
        logger.info(f"[{source_id}] No synced events to remove")
        return stats

    if dry_run:
        logger.info(
            f"[DRY RUN] Would delete {len(source_state.records)} synced events for {source_id}"
        )
        for event_id, record in source_state.records.items():
            logger.debug(f"[DRY RUN] Would delete: {event_id} ({record.remote_id})")
            stats.record(EventOutcome(event_id, "delete", remote_id=record.remote_id))
        return stats

    for event_id, record in list(source_state.records.items()):
        try:
            adapter.delete(record.remote_id)
        except RemoteNotFoundError:
            logger.debug(f"Remote entry {record.remote_id} already gone")
        except RemoteCalendarError as e:
            logger.error(f"Failed to remove {event_id} ({record.remote_id}): {e}")
            stats.record(
                EventOutcome(event_id, "delete", ok=False, remote_id=record.remote_id, error=str(e))
            )
            continue
        del source_state.records[event_id]
        stats.record(EventOutcome(event_id, "delete", remote_id=record.remote_id))

    source_state.stats.total_events = 0
    store.save(state)
    logger.info(f"[{source_id}] Clear complete: removed {stats.deleted} synced events")
    return stats
