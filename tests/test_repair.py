"""
Tests for the repair pass and the clear operation.
"""

import json
import threading

from tests.conftest import SOURCE_ID
from tests.conftest import make_event
from tests.conftest import make_raw_event
from tourney_calendar_sync.models import SourceConfig
from tourney_calendar_sync.models import SyncConfig
from tourney_calendar_sync.sync import CalendarSynchronizer
from tourney_calendar_sync.sync.clear import perform_clear
from tourney_calendar_sync.sync.reconcile import Reconciler
from tourney_calendar_sync.sync.repair import repair_source


def _seed(adapter, store, *event_ids):
    Reconciler(adapter, store).run(SOURCE_ID, [make_event(eid) for eid in event_ids])
    adapter.reset_counters()
    return store.load().sources[SOURCE_ID].records


class TestRepair:
    def test_unknown_source(self, adapter, store, sync_logger):
        result = repair_source("nope", adapter, store, sync_logger)
        assert (result.repaired, result.total) == (0, 0)

    def test_consistent_state_is_not_rewritten(self, adapter, store, state_path, sync_logger):
        _seed(adapter, store, "A", "B")
        mtime = state_path.stat().st_mtime_ns
        saves = []
        store.save = saves.append

        result = repair_source(SOURCE_ID, adapter, store, sync_logger)

        assert (result.repaired, result.total) == (0, 2)
        assert saves == []
        assert state_path.stat().st_mtime_ns == mtime

    def test_missing_entry_is_purged(self, adapter, store, sync_logger):
        records = _seed(adapter, store, "A", "B")
        del adapter.entries[records["A"].remote_id]

        result = repair_source(SOURCE_ID, adapter, store, sync_logger)

        assert (result.repaired, result.total) == (1, 2)
        assert set(store.load().sources[SOURCE_ID].records) == {"B"}

    def test_transient_lookup_error_keeps_record(self, adapter, store, sync_logger):
        records = _seed(adapter, store, "A")
        adapter.fail_exists.add(records["A"].remote_id)

        result = repair_source(SOURCE_ID, adapter, store, sync_logger)

        assert result.repaired == 0
        assert result.unverified == 1
        assert "A" in store.load().sources[SOURCE_ID].records

    def test_purged_event_is_recreated_on_next_sync(self, adapter, store, sync_logger):
        records = _seed(adapter, store, "A")
        del adapter.entries[records["A"].remote_id]
        repair_source(SOURCE_ID, adapter, store, sync_logger)

        _, stats = Reconciler(adapter, store).run(SOURCE_ID, [make_event("A")])

        assert stats.created == 1
        assert len(adapter.entries) == 1

    def test_cancel_stops_between_lookups(self, adapter, store, sync_logger):
        records = _seed(adapter, store, "A", "B", "C")
        for record in records.values():
            del adapter.entries[record.remote_id]
        cancel = threading.Event()
        original_exists = adapter.exists

        def exists_then_cancel(remote_id):
            present = original_exists(remote_id)
            cancel.set()
            return present

        adapter.exists = exists_then_cancel
        result = repair_source(SOURCE_ID, adapter, store, sync_logger, cancel)

        assert (result.repaired, result.total) == (1, 3)
        assert len(store.load().sources[SOURCE_ID].records) == 2

    def test_sync_with_repair_honours_cancel(self, adapter, tmp_path, state_path):
        events_file = tmp_path / "events.json"
        events_file.write_text(json.dumps([make_raw_event("A")]), encoding="utf-8")
        config = SyncConfig(
            state_file=state_path,
            sources={SOURCE_ID: SourceConfig(SOURCE_ID, events_file)},
            save_backoff=0,
        )
        synchronizer = CalendarSynchronizer(config, adapter_factory=lambda cfg, src: adapter)
        synchronizer.sync_source(SOURCE_ID)
        adapter.reset_counters()
        cancel = threading.Event()
        cancel.set()

        run = synchronizer.sync_source(SOURCE_ID, repair_first=True, cancel=cancel)

        assert adapter.lookups == []
        assert adapter.call_count == 0
        assert run.stats.cancelled is True


class TestClear:
    def test_clear_removes_everything(self, adapter, store, sync_logger):
        _seed(adapter, store, "A", "B")

        stats = perform_clear(SOURCE_ID, adapter, store, sync_logger)

        assert stats.deleted == 2
        assert adapter.entries == {}
        assert store.load().sources[SOURCE_ID].records == {}

    def test_clear_keeps_records_that_fail(self, adapter, store, sync_logger):
        records = _seed(adapter, store, "A", "B")
        adapter.fail_delete.add(records["A"].remote_id)

        stats = perform_clear(SOURCE_ID, adapter, store, sync_logger)

        assert (stats.deleted, stats.failed) == (1, 1)
        assert set(store.load().sources[SOURCE_ID].records) == {"A"}

    def test_clear_dry_run(self, adapter, store, sync_logger):
        _seed(adapter, store, "A")

        stats = perform_clear(SOURCE_ID, adapter, store, sync_logger, dry_run=True)

        assert stats.deleted == 1
        assert adapter.deletes == []
        assert "A" in store.load().sources[SOURCE_ID].records
