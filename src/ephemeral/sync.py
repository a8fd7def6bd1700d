"""Sync engine - all reads and writes between the entry cache and the remote store."""

import logging
from datetime import date
from typing import Callable, Sequence

from .core.cache import EntryCache
from .core.draft import check_capacity
from .core.entries import Entry
from .core.identity import Identity
from .core.moods import Mood
from .errors import MissingMoodError, NotAuthenticatedError, OwnershipError, RemoteError
from .ports.entry_store import EntryStore
from .session import SessionManager

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Mediates the entry cache and the remote store.

    Every remote call is scoped to the identity passed in, which must be
    the session's current identity. The cache only changes after the
    remote store acknowledges, and only if the session has not changed
    identity in the meantime.
    """

    def __init__(self, store: EntryStore, cache: EntryCache, session: SessionManager):
        self.store = store
        self.cache = cache
        self.session = session

    def _check_scope(self, identity: Identity | None) -> Identity:
        if identity is None:
            raise NotAuthenticatedError()
        if identity != self.session.identity:
            raise OwnershipError(f"{identity.id} is not the signed-in identity")
        return identity

    def _apply(self, generation: int, identity: Identity, mutate: Callable[[], None], what: str) -> bool:
        """Run a cache mutation unless the session moved on while the remote call was in flight."""
        if generation != self.session.generation or self.cache.owner_id != identity.id:
            logger.info(f"Discarding {what} acknowledged after {identity.email or identity.id} signed out")
            return False
        mutate()
        return True

    async def fetch_all(self, identity: Identity | None) -> list[Entry]:
        """Fetch every entry owned by `identity`. Records for other owners are dropped."""
        if identity is None:
            raise NotAuthenticatedError()

        records = await self.store.select_for_owner(identity.id)

        entries = []
        for record in records:
            if record.get("user_id") != identity.id:
                logger.warning(f"Dropping record for {record.get('date')} owned by another user")
                continue
            try:
                entries.append(Entry.from_record(record))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed record {record.get('date')}: {e}")
        return entries

    async def refresh(self, identity: Identity | None) -> bool:
        """
        Replace the cache with a fresh fetch for `identity`.

        Returns False if the result was discarded because the identity
        changed before the fetch completed. On failure the cache keeps
        its last-known-good contents.
        """
        identity = self._check_scope(identity)
        generation = self.session.generation
        entries = await self.fetch_all(identity)
        if generation != self.session.generation:
            logger.info(f"Discarding stale fetch for {identity.email or identity.id}")
            return False
        self.cache.replace(identity.id, entries)
        logger.debug(f"Cached {len(entries)} entries for {identity.email or identity.id}")
        return True

    async def save(
        self,
        identity: Identity | None,
        day: date,
        mood: Mood | str | None,
        note: str,
        attachments: Sequence[str],
    ) -> Entry:
        """Upsert the entry for (identity, day), replacing mood, note and images."""
        identity = self._check_scope(identity)
        if mood is None:
            raise MissingMoodError()
        check_capacity(0, len(attachments))

        entry = Entry(
            owner_id=identity.id,
            date=day,
            mood=Mood.parse(mood),
            note=note or "",
            images=tuple(attachments),
        )

        generation = self.session.generation
        try:
            stored = await self.store.upsert(entry.to_record())
        except RemoteError as e:
            raise RemoteError(f"Failed to save {day.isoformat()}. Try again. ({e})", e.transient) from e

        saved = Entry.from_record(stored) if stored else entry
        if saved.owner_id != identity.id:
            raise OwnershipError(f"Store returned a record for {saved.owner_id}")

        self._apply(generation, identity, lambda: self.cache.put(saved), f"save of {day.isoformat()}")
        return saved

    async def delete(self, identity: Identity | None, day: date) -> None:
        """Delete the entry for (identity, day) remotely, then locally."""
        identity = self._check_scope(identity)
        generation = self.session.generation
        try:
            await self.store.delete(identity.id, day)
        except RemoteError as e:
            raise RemoteError(f"Failed to delete {day.isoformat()}. Try again. ({e})", e.transient) from e
        self._apply(generation, identity, lambda: self.cache.remove(day), f"delete of {day.isoformat()}")
