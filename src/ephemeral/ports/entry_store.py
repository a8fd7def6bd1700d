"""Remote entry store interface."""

from datetime import date
from typing import Protocol


class EntryStore(Protocol):
    """
    Interface for the authoritative remote record store.

    Records are dicts of shape
    {user_id, date (ISO day), mood, note, images}. The store enforces
    uniqueness on (user_id, date).
    """

    async def select_for_owner(self, owner_id: str) -> list[dict]:
        """Return every record whose user_id is `owner_id`."""
        ...

    async def upsert(self, record: dict) -> dict:
        """Insert or replace the record keyed by (user_id, date). Returns the stored record."""
        ...

    async def delete(self, owner_id: str, day: date) -> None:
        """Delete the record matching (owner_id, day), if any."""
        ...
