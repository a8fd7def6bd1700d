"""Attachment encoder - turns selected images into inline data URLs."""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Callable, Iterable

from .core.draft import check_capacity
from .core.entries import MAX_ATTACHMENTS, Attachment
from .errors import InvalidAttachmentError

logger = logging.getLogger(__name__)


def image_mime_type(path: Path) -> str:
    """Guess an image MIME type from the file name. Raises InvalidAttachmentError otherwise."""
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        raise InvalidAttachmentError(f"{path.name} is not an image")
    return mime


class AttachmentEncoder:
    """
    Encodes a batch of image files for a draft.

    The whole batch is rejected up front if it would exceed the per-entry
    limit or contains a non-image. Files are then read concurrently; once
    every read has succeeded the encoded images are handed to `on_ready`
    in completion order, not selection order. A failed read delivers
    nothing.
    """

    def __init__(self, limit: int = MAX_ATTACHMENTS):
        self.limit = limit

    async def encode_files(
        self,
        paths: Iterable[Path | str],
        current_count: int,
        on_ready: Callable[[str], None],
    ) -> list[str]:
        """Encode `paths` and deliver each data URL to `on_ready`. Returns them in completion order."""
        selected = [Path(p).expanduser() for p in paths]
        check_capacity(current_count, len(selected), self.limit)

        batch = []
        for path in selected:
            if not path.is_file():
                raise InvalidAttachmentError(f"{path} does not exist")
            batch.append((path, image_mime_type(path)))

        encoded: list[str] = []

        async def encode_one(path: Path, mime: str) -> None:
            try:
                data = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise InvalidAttachmentError(f"Could not read {path.name}: {e}") from e
            encoded.append(Attachment(mime_type=mime, data=data).to_data_url())
            logger.debug(f"Encoded {path.name} ({len(data)} bytes)")

        await asyncio.gather(*(encode_one(path, mime) for path, mime in batch))

        # Nothing reaches the draft unless every file in the batch was read
        for url in encoded:
            on_ready(url)
        return encoded

    def encode_bytes(self, data: bytes, mime_type: str, current_count: int) -> str:
        """Encode one in-memory image (e.g. a downloaded chat photo)."""
        check_capacity(current_count, 1, self.limit)
        if not mime_type.startswith("image/"):
            raise InvalidAttachmentError(f"{mime_type} is not an image type")
        return Attachment(mime_type=mime_type, data=data).to_data_url()
