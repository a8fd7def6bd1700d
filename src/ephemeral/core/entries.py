"""Pure entry domain logic - no I/O dependencies."""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import date

from .moods import Mood

MAX_ATTACHMENTS = 3


@dataclass(frozen=True)
class Entry:
    """
    One persisted mood/note/image record for one owner on one calendar day.

    `owner_id` and `date` form the entry's identity and never change;
    `mood`, `note` and `images` are replaced wholesale on upsert.
    """

    owner_id: str
    date: date
    mood: Mood
    note: str = ""
    images: tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        """ISO day string used as the cache and record key."""
        return self.date.isoformat()

    @property
    def tile_class(self) -> str:
        """Calendar tile class for this entry's mood."""
        return f"tile-{self.mood.value}"

    def to_record(self) -> dict:
        """Serialize to the remote record shape."""
        return {
            "user_id": self.owner_id,
            "date": self.key,
            "mood": self.mood.value,
            "note": self.note,
            "images": list(self.images),
        }

    @classmethod
    def from_record(cls, data: dict) -> "Entry":
        """Create Entry from a remote record."""
        return cls(
            owner_id=data["user_id"],
            date=date.fromisoformat(str(data["date"])[:10]),
            mood=Mood.parse(data["mood"]),
            note=data.get("note") or "",
            images=tuple(data.get("images") or ()),
        )


@dataclass(frozen=True)
class Attachment:
    """An image in its decoded form."""

    mime_type: str
    data: bytes

    def to_data_url(self) -> str:
        """Encode as a self-contained `data:` URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, url: str) -> "Attachment":
        """Decode a `data:<mime>;base64,<payload>` URL. Raises ValueError if malformed."""
        if not url.startswith("data:") or ";base64," not in url:
            raise ValueError("Not a base64 data URL")
        header, _, payload = url.partition(";base64,")
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from None
        return cls(mime_type=header[len("data:"):], data=data)


def greeting_for(hour: int) -> str:
    """Prompt shown above the note field, by hour of day."""
    if hour < 12:
        return "How is your morning starting?"
    if hour < 17:
        return "How is your afternoon going?"
    return "How was your day?"
