"""Draft state - the unsaved entry being composed."""

from dataclasses import dataclass, field
from datetime import date

from ephemeral.errors import AttachmentCapacityError

from .entries import MAX_ATTACHMENTS, Entry
from .moods import Mood


def check_capacity(current: int, adding: int, limit: int = MAX_ATTACHMENTS) -> None:
    """Reject a whole batch if it would push the entry past `limit` images."""
    if current + adding > limit:
        raise AttachmentCapacityError(current, adding, limit)


@dataclass
class Draft:
    """
    Transient mood/note/attachments being composed.

    `target_date` is None while composing today's entry, or the original
    date of a past entry loaded for editing.
    """

    mood: Mood | None = None
    note: str = ""
    attachments: list[str] = field(default_factory=list)
    target_date: date | None = None

    def clear(self) -> None:
        self.mood = None
        self.note = ""
        self.attachments = []
        self.target_date = None

    def fill_from(self, entry: Entry) -> None:
        """Copy an entry's mutable fields into the draft."""
        self.mood = entry.mood
        self.note = entry.note
        self.attachments = list(entry.images)

    @property
    def is_empty(self) -> bool:
        return self.mood is None and not self.note and not self.attachments
