"""
Canonical event loading.

Scraping and standardization happen upstream; this module only reads the
standardized events they leave behind and rejects malformed entries.
"""

import json
import logging
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class ProviderResult:
    """Valid events plus the ids of entries that had to be skipped."""

    events: list[CanonicalEvent] = field(default_factory=list)
    invalid_ids: list[str] = field(default_factory=list)
    skipped: int = 0


def parse_events(raw_events: list, source_id: str = "") -> ProviderResult:
    """Turn raw event dicts into CanonicalEvents, skipping malformed ones."""
    result = ProviderResult()
    for index, raw in enumerate(raw_events):
        if not isinstance(raw, dict):
            logger.warning(f"[{source_id}] Skipping entry #{index}: not an object")
            result.skipped += 1
            continue
        try:
            result.events.append(CanonicalEvent.from_dict(raw))
        except (TypeError, ValueError) as e:
            logger.warning(f"[{source_id}] Skipping malformed event #{index}: {e}")
            result.skipped += 1
            event_id = str(raw.get("id") or "").strip()
            if event_id:
                result.invalid_ids.append(event_id)
    return result


class JsonFileProvider:
    """Reads a source's canonical events from a JSON file.

    The file holds either a bare list of events or ``{"events": [...]}``.
    """

    def __init__(self, events_file: Path):
        self.events_file = Path(events_file).expanduser()

    def load(self, source_id: str) -> ProviderResult:
        try:
            with self.events_file.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            raise ProviderError(f"Events file not found: {self.events_file}") from None
        except (OSError, json.JSONDecodeError) as e:
            raise ProviderError(f"Cannot read events file {self.events_file}: {e}") from e

        if isinstance(data, dict):
            data = data.get("events")
        if not isinstance(data, list):
            raise ProviderError(f"Events file {self.events_file} holds no event list")

        result = parse_events(data, source_id)
        logger.info(
            f"[{source_id}] Loaded {len(result.events)} event(s) from {self.events_file}"
            + (f", skipped {result.skipped} malformed" if result.skipped else "")
        )
        return result
