"""Journal facade - wires session, sync engine, cache and draft together."""

import logging
from datetime import date, datetime
from typing import Callable

from .attachments import AttachmentEncoder
from .core.cache import EntryCache
from .core.draft import Draft
from .core.entries import Entry, greeting_for
from .core.identity import Identity
from .draft import DraftController
from .errors import EntryNotFoundError, RemoteError
from .ports.auth_service import AuthService
from .ports.entry_store import EntryStore
from .session import SessionManager
from .sync import SyncEngine

logger = logging.getLogger(__name__)


class Journal:
    """
    The entry collection of whoever is signed in.

    On every identity change the cache and draft are torn down; a new
    identity gets a fresh fetch and today's draft is reseeded from it.
    """

    def __init__(
        self,
        auth: AuthService,
        store: EntryStore,
        today: Callable[[], date] = date.today,
        ack_seconds: float = 2.0,
        encoder: AttachmentEncoder | None = None,
    ):
        self.today = today
        self.session = SessionManager(auth)
        self.cache = EntryCache()
        self.sync = SyncEngine(store, self.cache, self.session)
        self.drafts = DraftController(
            self.sync,
            self.session,
            encoder=encoder,
            today=today,
            ack_seconds=ack_seconds,
        )
        self.last_error: str | None = None
        self._unsubscribe = self.session.subscribe(self._on_identity_change)

    async def start(self) -> None:
        await self.session.start()

    def close(self) -> None:
        self._unsubscribe()
        self.session.close()

    async def _on_identity_change(self, old: Identity | None, new: Identity | None) -> None:
        self.drafts.reset()
        if new is None:
            self.cache.clear()
            return
        self.cache.scope_to(new.id)
        try:
            await self._refresh_and_seed(new)
        except RemoteError as e:
            logger.error(f"Could not load entries for {new.email or new.id}: {e}")
            self.last_error = str(e)

    async def _refresh_and_seed(self, identity: Identity) -> bool:
        applied = await self.sync.refresh(identity)
        if applied:
            self.last_error = None
            self.drafts.seed(self.cache.get(self.today()))
        return applied

    # ============== Session ==============

    @property
    def identity(self) -> Identity | None:
        return self.session.identity

    async def sign_in(self, email: str, password: str) -> str | None:
        return await self.session.sign_in(email, password)

    async def sign_up(self, email: str, password: str) -> str | None:
        return await self.session.sign_up(email, password)

    async def sign_out(self) -> None:
        await self.session.sign_out()

    # ============== Reads ==============

    async def refresh(self) -> bool:
        """Refetch the current identity's entries. RemoteError propagates for retry."""
        return await self._refresh_and_seed(self.session.require_identity())

    async def ensure_loaded(self) -> None:
        """
        Retry a load that failed at sign-in before anything is written.

        Saves replace the whole record, so a draft that was never seeded
        from the stored entry would wipe its note and images.
        """
        self.session.require_identity()
        if self.last_error is not None:
            await self.refresh()

    def entries(self) -> dict[date, Entry]:
        """Every cached entry of the current identity, keyed by date."""
        return self.cache.entries()

    def entry_for(self, day: date) -> Entry | None:
        return self.cache.get(day)

    def month(self, year: int, month: int) -> list[Entry]:
        return self.cache.in_month(year, month)

    def greeting(self, now: datetime | None = None) -> str:
        return greeting_for((now or datetime.now()).hour)

    # ============== Writes ==============

    @property
    def draft(self) -> Draft:
        return self.drafts.draft

    async def save(self) -> Entry:
        """Commit the draft (today's, or the past entry being edited)."""
        return await self.drafts.commit()

    def edit_entry(self, day: date) -> Entry:
        """Load a past day's entry into the draft for editing."""
        self.session.require_identity()
        entry = self.cache.get(day)
        if entry is None:
            raise EntryNotFoundError(f"No entry for {day.isoformat()}")
        self.drafts.load_for_edit(entry)
        return entry

    async def delete_entry(self, day: date) -> None:
        identity = self.session.require_identity()
        if day not in self.cache:
            raise EntryNotFoundError(f"No entry for {day.isoformat()}")
        await self.sync.delete(identity, day)
        if self.drafts.target_date == day and self.session.identity == identity:
            self.drafts.seed(self.cache.get(self.today()))
