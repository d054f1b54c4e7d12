"""
Stateless event-inspection helpers.
"""

import hashlib
import json

from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import format_utc
from tourney_calendar_sync.models import utc_now

# Hex characters kept from the SHA-256 digest (64 bits).  Plenty for
# tens of thousands of events per source.
HASH_LENGTH = 16

# Fields that change what the remote entry looks like.  description,
# lastUpdated and source are bookkeeping and must not trigger updates.
HASHED_FIELDS = (
    "name",
    "dateStart",
    "dateEnd",
    "location",
    "category",
    "level",
    "prize",
    "url",
)


def hash_projection(event: CanonicalEvent) -> dict:
    """Return the display-relevant subset of an event, JSON-ready."""
    payload = event.to_dict()
    return {key: payload[key] for key in HASHED_FIELDS}


def compute_event_hash(event: CanonicalEvent) -> str:
    """
    Generate a short digest of an event for change detection.

    Keys are sorted at every level so the digest does not depend on the
    order fields were produced in.
    """
    serialized = json.dumps(
        hash_projection(event),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def timestamp() -> str:
    """Current UTC time in the format stored in the state document."""
    return format_utc(utc_now())
