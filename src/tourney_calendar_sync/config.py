"""
INI configuration file loading.
"""

from configparser import ConfigParser
from pathlib import Path

from tourney_calendar_sync.models import DEFAULT_STATE_FILE
from tourney_calendar_sync.models import CalendarSyncError
from tourney_calendar_sync.models import SourceConfig
from tourney_calendar_sync.models import SyncConfig

MAIN_SECTION = "tourney-calendar-sync"
SOURCE_PREFIX = "source:"


def _path(value: str, base: Path) -> Path:
    """Expand ``~`` and resolve relative paths against the config file's directory."""
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def load_config(config_path: Path) -> SyncConfig:
    """
    Read the config file into a SyncConfig.

    A missing file yields the defaults with no sources.  Each
    ``[source:<id>]`` section needs an ``events_file``.
    """
    config_path = Path(config_path).expanduser()
    config = SyncConfig(state_file=DEFAULT_STATE_FILE)
    if not config_path.exists():
        return config

    parser = ConfigParser()
    parser.read(config_path, encoding="utf-8")
    base = config_path.parent

    if MAIN_SECTION in parser:
        main = parser[MAIN_SECTION]
        try:
            if "state_file" in main:
                config.state_file = _path(main["state_file"], base)
            config.adapter = main.get("adapter", config.adapter).strip()
            config.checkpoint = main.getboolean("checkpoint", config.checkpoint)
            config.save_retries = main.getint("save_retries", config.save_retries)
            config.save_backoff = main.getfloat("save_backoff", config.save_backoff)
        except ValueError as e:
            raise CalendarSyncError(f"Invalid value in [{MAIN_SECTION}]: {e}") from e
        if main.get("google_credentials"):
            config.google_credentials = _path(main["google_credentials"], base)
        config.eds_calendar_id = main.get("eds_calendar_id", "").strip()

    for section in parser.sections():
        if not section.startswith(SOURCE_PREFIX):
            continue
        source_id = section[len(SOURCE_PREFIX) :].strip()
        values = parser[section]
        if not source_id or not values.get("events_file"):
            raise CalendarSyncError(f"Section [{section}] needs a source id and events_file")
        config.sources[source_id] = SourceConfig(
            source_id=source_id,
            events_file=_path(values["events_file"], base),
            calendar_id=values.get("calendar_id", "").strip(),
        )

    return config
