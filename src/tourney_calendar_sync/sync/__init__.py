"""
CalendarSynchronizer — thin orchestrator that delegates to sync submodules.
"""

import logging
import threading
from dataclasses import dataclass

from tourney_calendar_sync.models import CalendarSyncError
from tourney_calendar_sync.models import RepairResult
from tourney_calendar_sync.models import SourceConfig
from tourney_calendar_sync.models import SyncConfig
from tourney_calendar_sync.models import SyncStats
from tourney_calendar_sync.provider import JsonFileProvider
from tourney_calendar_sync.remote import RemoteCalendarAdapter
from tourney_calendar_sync.remote import create_adapter
from tourney_calendar_sync.store import SyncStateStore
from tourney_calendar_sync.sync.clear import perform_clear
from tourney_calendar_sync.sync.reconcile import Reconciler
from tourney_calendar_sync.sync.repair import repair_source


@dataclass
class SourceRun:
    """What happened to one source during a synchronizer run."""

    source_id: str
    stats: SyncStats | None = None
    repair: RepairResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.stats is None or self.stats.failed == 0)


class CalendarSynchronizer:
    """Main synchronization engine.

    ``adapter_factory`` defaults to the registered adapter named in the
    config; tests pass their own to avoid touching a real calendar.
    """

    def __init__(self, config: SyncConfig, adapter_factory=None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.store = SyncStateStore(
            config.state_file,
            retries=config.save_retries,
            backoff=config.save_backoff,
        )
        self._adapter_factory = adapter_factory or create_adapter

    def _source(self, source_id: str) -> SourceConfig:
        try:
            return self.config.sources[source_id]
        except KeyError:
            raise CalendarSyncError(f"Source '{source_id}' is not configured") from None

    def _adapter(self, source: SourceConfig) -> RemoteCalendarAdapter:
        return self._adapter_factory(self.config, source)

    def _selected(self, source_ids: list[str] | None) -> list[str]:
        return list(source_ids) if source_ids else sorted(self.config.sources)

    def sync_source(
        self,
        source_id: str,
        repair_first: bool = False,
        cancel: threading.Event | None = None,
    ) -> SourceRun:
        """Run one reconciliation pass for a source."""
        run = SourceRun(source_id)
        source = self._source(source_id)
        loaded = JsonFileProvider(source.events_file).load(source_id)
        adapter = self._adapter(source)

        if repair_first and not self.config.dry_run:
            run.repair = repair_source(source_id, adapter, self.store, self.logger, cancel)

        reconciler = Reconciler(
            adapter,
            self.store,
            dry_run=self.config.dry_run,
            checkpoint=self.config.checkpoint,
            logger=self.logger,
        )
        _, run.stats = reconciler.run(source_id, loaded.events, loaded.invalid_ids, cancel)
        # Entries so broken they had no id never reach the reconciler.
        run.stats.invalid += loaded.skipped - len(loaded.invalid_ids)
        return run

    def run(
        self,
        source_ids: list[str] | None = None,
        repair_first: bool = False,
        cancel: threading.Event | None = None,
    ) -> list[SourceRun]:
        """Sync each selected source; one failing source does not stop the rest."""
        runs: list[SourceRun] = []
        for source_id in self._selected(source_ids):
            if cancel is not None and cancel.is_set():
                break
            try:
                runs.append(self.sync_source(source_id, repair_first, cancel))
            except CalendarSyncError as e:
                self.logger.error(f"Error syncing {source_id}: {e}")
                runs.append(SourceRun(source_id, error=str(e)))
        return runs

    def repair(self, source_ids: list[str] | None = None) -> list[SourceRun]:
        runs: list[SourceRun] = []
        for source_id in self._selected(source_ids):
            try:
                adapter = self._adapter(self._source(source_id))
                result = repair_source(source_id, adapter, self.store, self.logger)
                runs.append(SourceRun(source_id, repair=result))
            except CalendarSyncError as e:
                self.logger.error(f"Error repairing {source_id}: {e}")
                runs.append(SourceRun(source_id, error=str(e)))
        return runs

    def clear(self, source_ids: list[str] | None = None) -> list[SourceRun]:
        runs: list[SourceRun] = []
        for source_id in self._selected(source_ids):
            try:
                adapter = self._adapter(self._source(source_id))
                stats = perform_clear(
                    source_id, adapter, self.store, self.logger, dry_run=self.config.dry_run
                )
                runs.append(SourceRun(source_id, stats=stats))
            except CalendarSyncError as e:
                self.logger.error(f"Error clearing {source_id}: {e}")
                runs.append(SourceRun(source_id, error=str(e)))
        return runs
