"""Draft controller - the in-progress entry for today or for an edited day."""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Callable, Iterable

from .attachments import AttachmentEncoder
from .core.draft import Draft
from .core.entries import Entry
from .core.moods import Mood
from .errors import MissingMoodError, ValidationError
from .session import SessionManager
from .sync import SyncEngine

logger = logging.getLogger(__name__)


class DraftController:
    """
    Holds unsaved mood/note/attachments and commits them through the sync engine.

    Mutations are local until `commit()`. All of them require a signed-in
    identity.
    """

    def __init__(
        self,
        sync: SyncEngine,
        session: SessionManager,
        encoder: AttachmentEncoder | None = None,
        today: Callable[[], date] = date.today,
        ack_seconds: float = 2.0,
    ):
        self.sync = sync
        self.session = session
        self.encoder = encoder or AttachmentEncoder()
        self.today = today
        self.ack_seconds = ack_seconds
        self.draft = Draft()
        self._saved = False
        self._ack_handle: asyncio.TimerHandle | None = None

    @property
    def target_date(self) -> date:
        """The day a commit will be saved under."""
        return self.draft.target_date or self.today()

    @property
    def is_editing_past(self) -> bool:
        return self.draft.target_date is not None and self.draft.target_date != self.today()

    @property
    def is_saved(self) -> bool:
        """True for a short while after a successful commit."""
        return self._saved

    def _clear_ack(self) -> None:
        self._saved = False
        if self._ack_handle is not None:
            self._ack_handle.cancel()
            self._ack_handle = None

    def _acknowledge(self) -> None:
        self._clear_ack()
        self._saved = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._ack_handle = loop.call_later(self.ack_seconds, self._clear_ack)

    # ============== Seeding ==============

    def seed(self, entry: Entry | None) -> None:
        """Point the draft at today, filled from `entry` or empty."""
        self.draft.clear()
        if entry is not None:
            self.draft.fill_from(entry)

    def load_for_edit(self, entry: Entry) -> None:
        """Point the draft at a past entry; commit will save under its date."""
        self.session.require_identity()
        self._clear_ack()
        self.draft.clear()
        self.draft.fill_from(entry)
        self.draft.target_date = entry.date

    def reset(self) -> None:
        self._clear_ack()
        self.draft.clear()

    # ============== Local mutations ==============

    def set_mood(self, mood: Mood | str) -> None:
        self.session.require_identity()
        self.draft.mood = Mood.parse(mood)

    def set_note(self, note: str) -> None:
        self.session.require_identity()
        self.draft.note = note

    async def add_attachments(self, paths: Iterable[Path | str]) -> list[str]:
        """Encode and append a batch of image files. All-or-nothing on capacity."""
        self.session.require_identity()
        # Bound to this draft's list, so a reset mid-encode leaves the new draft untouched
        target = self.draft.attachments
        return await self.encoder.encode_files(paths, len(target), target.append)

    def add_attachment_bytes(self, data: bytes, mime_type: str) -> str:
        self.session.require_identity()
        url = self.encoder.encode_bytes(data, mime_type, len(self.draft.attachments))
        self.draft.attachments.append(url)
        return url

    def remove_attachment(self, index: int) -> None:
        self.session.require_identity()
        if not 0 <= index < len(self.draft.attachments):
            raise ValidationError(f"No image at position {index + 1}")
        del self.draft.attachments[index]

    # ============== Commit ==============

    async def commit(self) -> Entry:
        """Save the draft under its target date. Validates before any remote call."""
        identity = self.session.require_identity()
        if self.draft.mood is None:
            raise MissingMoodError()

        day = self.target_date
        saved = await self.sync.save(
            identity,
            day,
            self.draft.mood,
            self.draft.note,
            list(self.draft.attachments),
        )

        if self.session.identity == identity:
            target = self.draft.target_date
            self.draft.fill_from(saved)
            self.draft.target_date = target
            self._acknowledge()
        logger.info(f"Saved entry for {day.isoformat()}")
        return saved
