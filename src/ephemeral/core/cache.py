"""In-memory entry cache scoped to one identity."""

from datetime import date

from ephemeral.errors import OwnershipError

from .entries import Entry


class EntryCache:
    """
    Mapping from calendar date to Entry for exactly one owner, or empty.

    A read cache of the remote store. Mutations mirror acknowledged remote
    writes; callers are responsible for only invoking them after the
    remote operation succeeded.
    """

    def __init__(self):
        self._owner_id: str | None = None
        self._entries: dict[date, Entry] = {}

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    def replace(self, owner_id: str, entries: list[Entry]) -> None:
        """Replace the whole mapping with a fresh fetch for `owner_id`."""
        foreign = [e for e in entries if e.owner_id != owner_id]
        if foreign:
            raise OwnershipError(
                f"Refusing to cache {len(foreign)} entries not owned by {owner_id}"
            )
        self._owner_id = owner_id
        self._entries = {e.date: e for e in entries}

    def get(self, day: date) -> Entry | None:
        return self._entries.get(day)

    def put(self, entry: Entry) -> None:
        """Insert or replace by date."""
        if entry.owner_id != self._owner_id:
            raise OwnershipError(
                f"Entry for {entry.owner_id} cannot be cached for {self._owner_id}"
            )
        self._entries[entry.date] = entry

    def remove(self, day: date) -> None:
        self._entries.pop(day, None)

    def clear(self) -> None:
        """Empty the mapping and drop the owner scope."""
        self._owner_id = None
        self._entries = {}

    def scope_to(self, owner_id: str) -> None:
        """Empty the mapping and scope it to a new owner ahead of its first fetch."""
        self._owner_id = owner_id
        self._entries = {}

    def entries(self) -> dict[date, Entry]:
        """Snapshot of all cached entries, sorted by date."""
        return dict(sorted(self._entries.items()))

    def in_month(self, year: int, month: int) -> list[Entry]:
        """Entries falling in a calendar month, oldest first."""
        return [
            e for d, e in sorted(self._entries.items())
            if d.year == year and d.month == month
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, day: date) -> bool:
        return day in self._entries
