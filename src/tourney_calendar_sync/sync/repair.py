"""
State audit: drop mappings whose remote entry no longer exists.
"""

import threading

from tourney_calendar_sync.models import RemoteCalendarError
from tourney_calendar_sync.models import RepairResult
from tourney_calendar_sync.remote import RemoteCalendarAdapter
from tourney_calendar_sync.store import SyncStateStore


def repair_source(
    source_id: str,
    adapter: RemoteCalendarAdapter,
    store: SyncStateStore,
    logger,
    cancel: threading.Event | None = None,
) -> RepairResult:
    """
    Verify every record of a source against the remote calendar.

    Only a definitive "not found" purges a record.  A failed existence
    check (timeout, transport error, auth hiccup) proves nothing about the
    remote entry, so the record is kept and counted as unverified.

    The state is written back only when something was purged.  A set
    ``cancel`` stops the audit between records; purges made so far are kept.
    """
    logger.info(f"[{source_id}] Repairing sync state...")
    state = store.load()
    source_state = state.sources.get(source_id)

    if source_state is None:
        logger.info(f"[{source_id}] No sync state found, nothing to repair")
        return RepairResult()

    result = RepairResult(total=len(source_state.records))

    for event_id, record in list(source_state.records.items()):
        if cancel is not None and cancel.is_set():
            logger.warning(f"[{source_id}] Repair cancelled; remaining records left unverified")
            break
        try:
            present = adapter.exists(record.remote_id)
        except RemoteCalendarError as e:
            logger.warning(
                f"[{source_id}] Could not verify {event_id} ({record.remote_id}), keeping it: {e}"
            )
            result.unverified += 1
            continue

        if not present:
            logger.info(
                f"[{source_id}] Event {event_id} not found in calendar, removing from sync state"
            )
            del source_state.records[event_id]
            result.repaired += 1

    if result.repaired > 0:
        store.save(state)
        logger.info(
            f"[{source_id}] Repaired {result.repaired} entries in sync state "
            f"(Total: {result.total})"
        )
    else:
        logger.info(f"[{source_id}] Sync state is consistent")

    return result
