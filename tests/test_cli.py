"""
End-to-end tests for the typer CLI using an in-memory adapter.
"""

import json
import textwrap

import pytest
from typer.testing import CliRunner

from tests.conftest import SOURCE_ID
from tests.conftest import make_raw_event
from tests.fake_adapter import FakeCalendarAdapter
from tourney_calendar_sync.cli import app
from tourney_calendar_sync.remote import ADAPTERS
from tourney_calendar_sync.store import SyncStateStore

runner = CliRunner()


@pytest.fixture
def fake_adapter(monkeypatch):
    adapter = FakeCalendarAdapter()
    monkeypatch.setitem(ADAPTERS, "fake", lambda config, source: adapter)
    return adapter


@pytest.fixture
def workspace(tmp_path):
    events_file = tmp_path / "bwf.json"
    events_file.write_text(
        json.dumps({"events": [make_raw_event("A"), make_raw_event("B", "Indonesia Masters")]}),
        encoding="utf-8",
    )
    config = tmp_path / "config.ini"
    config.write_text(
        textwrap.dedent(
            f"""
            [tourney-calendar-sync]
            state_file = sync-state.json
            adapter = fake
            save_backoff = 0

            [source:{SOURCE_ID}]
            events_file = bwf.json
            """
        ),
        encoding="utf-8",
    )
    return tmp_path


def _invoke(workspace, *args):
    return runner.invoke(app, ["--config", str(workspace / "config.ini"), *args])


def _records(workspace):
    return SyncStateStore(workspace / "sync-state.json").load().sources[SOURCE_ID].records


def test_sync_creates_then_is_idempotent(workspace, fake_adapter):
    result = _invoke(workspace, "sync")
    assert result.exit_code == 0, result.output
    assert sorted(_records(workspace)) == ["A", "B"]
    assert len(fake_adapter.entries) == 2

    fake_adapter.reset_counters()
    result = _invoke(workspace, "sync")
    assert result.exit_code == 0, result.output
    assert fake_adapter.call_count == 0


def test_sync_failure_exits_nonzero(workspace, fake_adapter):
    fake_adapter.fail_create.add("B")

    result = _invoke(workspace, "sync")

    assert result.exit_code == 1
    assert sorted(_records(workspace)) == ["A"]


def test_sync_dry_run(workspace, fake_adapter):
    result = _invoke(workspace, "sync", "--dry-run")

    assert result.exit_code == 0, result.output
    assert fake_adapter.call_count == 0
    assert not (workspace / "sync-state.json").exists()


def test_unknown_source_rejected(workspace, fake_adapter):
    result = _invoke(workspace, "sync", "nope")
    assert result.exit_code == 1
    assert fake_adapter.call_count == 0


def test_unknown_adapter_reports_error(workspace):
    result = _invoke(workspace, "sync", "--adapter", "carrier-pigeon")
    assert result.exit_code == 1


def test_missing_events_file_fails_source(workspace, fake_adapter):
    (workspace / "bwf.json").unlink()
    result = _invoke(workspace, "sync")
    assert result.exit_code == 1


def test_repair_purges_missing_entries(workspace, fake_adapter):
    _invoke(workspace, "sync")
    remote_id = _records(workspace)["A"].remote_id
    del fake_adapter.entries[remote_id]

    result = _invoke(workspace, "repair")

    assert result.exit_code == 0, result.output
    assert sorted(_records(workspace)) == ["B"]


def test_clear_with_yes(workspace, fake_adapter):
    _invoke(workspace, "sync")

    result = _invoke(workspace, "clear", "--yes")

    assert result.exit_code == 0, result.output
    assert fake_adapter.entries == {}
    assert _records(workspace) == {}


def test_clear_aborts_without_confirmation(workspace, fake_adapter):
    _invoke(workspace, "sync")

    result = runner.invoke(
        app, ["--config", str(workspace / "config.ini"), "clear"], input="n\n"
    )

    assert result.exit_code == 1
    assert len(fake_adapter.entries) == 2


def test_status_lists_sources(workspace, fake_adapter):
    _invoke(workspace, "sync")

    result = _invoke(workspace, "status")

    assert result.exit_code == 0, result.output
    assert SOURCE_ID in result.output


def test_adapters_lists_registry(fake_adapter):
    result = runner.invoke(app, ["adapters"])
    assert result.exit_code == 0
    for name in ("eds", "fake", "google"):
        assert name in result.output
