"""
Tests for INI config loading.
"""

import textwrap

import pytest

from tourney_calendar_sync.config import load_config
from tourney_calendar_sync.models import DEFAULT_STATE_FILE
from tourney_calendar_sync.models import CalendarSyncError


def _write(tmp_path, body: str):
    path = tmp_path / "config.ini"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.ini")
    assert cfg.state_file == DEFAULT_STATE_FILE
    assert cfg.adapter == "google"
    assert cfg.checkpoint is True
    assert cfg.sources == {}


def test_full_config(tmp_path):
    path = _write(
        tmp_path,
        """
        [tourney-calendar-sync]
        state_file = state/sync-state.json
        adapter = eds
        checkpoint = no
        save_retries = 5
        save_backoff = 0.25
        google_credentials = /etc/keys/service.json
        eds_calendar_id = tournaments-uid

        [source:bwf]
        events_file = data/bwf.json
        calendar_id = abc@group.calendar.google.com

        [source:tennis]
        events_file = /srv/tennis.json
        """,
    )

    cfg = load_config(path)

    assert cfg.state_file == tmp_path / "state" / "sync-state.json"
    assert cfg.adapter == "eds"
    assert cfg.checkpoint is False
    assert cfg.save_retries == 5
    assert cfg.save_backoff == 0.25
    assert str(cfg.google_credentials) == "/etc/keys/service.json"
    assert cfg.eds_calendar_id == "tournaments-uid"
    assert sorted(cfg.sources) == ["bwf", "tennis"]
    assert cfg.sources["bwf"].events_file == tmp_path / "data" / "bwf.json"
    assert cfg.sources["bwf"].calendar_id == "abc@group.calendar.google.com"
    assert str(cfg.sources["tennis"].events_file) == "/srv/tennis.json"
    assert cfg.sources["tennis"].calendar_id == ""


def test_unrelated_sections_are_ignored(tmp_path):
    path = _write(
        tmp_path,
        """
        [other]
        key = value

        [source:bwf]
        events_file = bwf.json
        """,
    )
    assert list(load_config(path).sources) == ["bwf"]


def test_invalid_number_raises(tmp_path):
    path = _write(
        tmp_path,
        """
        [tourney-calendar-sync]
        save_retries = several
        """,
    )
    with pytest.raises(CalendarSyncError):
        load_config(path)


def test_source_without_events_file_raises(tmp_path):
    path = _write(
        tmp_path,
        """
        [source:bwf]
        calendar_id = abc
        """,
    )
    with pytest.raises(CalendarSyncError):
        load_config(path)
