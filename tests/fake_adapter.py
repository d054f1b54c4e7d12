"""
In-memory fake calendar adapter for testing.

Duck-type-compatible stand-in for the remote adapters.  No network or EDS
daemon is required — entries are kept in a plain dict keyed by remote id.
"""

from tourney_calendar_sync.models import CanonicalEvent
from tourney_calendar_sync.models import RemoteCalendarError
from tourney_calendar_sync.models import RemoteNotFoundError


class FakeCalendarAdapter:
    """In-memory stub that satisfies the RemoteCalendarAdapter contract."""

    def __init__(self, collection_id: str = "fake-calendar"):
        self.collection_id = collection_id
        # remote id → event
        self.entries: dict[str, CanonicalEvent] = {}
        self.creates: list[str] = []
        self.updates: list[str] = []
        self.deletes: list[str] = []
        self.lookups: list[str] = []
        # event ids / remote ids whose next operations should raise
        self.fail_create: set[str] = set()
        self.fail_update: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_exists: set[str] = set()
        self._counter = 0

    # ------------------------------------------------------------------ #
    # RemoteCalendarAdapter interface                                      #
    # ------------------------------------------------------------------ #

    def create(self, event: CanonicalEvent) -> str:
        self.creates.append(event.id)
        if event.id in self.fail_create:
            raise RemoteCalendarError(f"create failed for {event.id}")
        self._counter += 1
        remote_id = f"remote-{self._counter}"
        self.entries[remote_id] = event
        return remote_id

    def update(self, remote_id: str, event: CanonicalEvent) -> None:
        self.updates.append(event.id)
        if event.id in self.fail_update:
            raise RemoteCalendarError(f"update failed for {event.id}")
        if remote_id not in self.entries:
            raise RemoteNotFoundError(remote_id)
        self.entries[remote_id] = event

    def delete(self, remote_id: str) -> None:
        self.deletes.append(remote_id)
        if remote_id in self.fail_delete:
            raise RemoteCalendarError(f"delete failed for {remote_id}")
        if remote_id not in self.entries:
            raise RemoteNotFoundError(remote_id)
        del self.entries[remote_id]

    def exists(self, remote_id: str) -> bool:
        self.lookups.append(remote_id)
        if remote_id in self.fail_exists:
            raise RemoteCalendarError(f"timeout checking {remote_id}")
        return remote_id in self.entries

    # ------------------------------------------------------------------ #
    # Test helpers                                                         #
    # ------------------------------------------------------------------ #

    @property
    def call_count(self) -> int:
        return len(self.creates) + len(self.updates) + len(self.deletes)

    def names(self) -> set[str]:
        return {event.name for event in self.entries.values()}

    def reset_counters(self):
        """Clear the create/update/delete lists between sync runs."""
        self.creates.clear()
        self.updates.clear()
        self.deletes.clear()
        self.lookups.clear()
