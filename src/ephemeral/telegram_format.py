"""Telegram message formatting for entries and timelines."""

import telegramify_markdown

from .core.entries import Entry
from .core.moods import MOODS
from .core.timeline import EMPTY_NOTE, format_month

# Telegram rejects messages over 4096 chars
CHUNK_SIZE = 4000


def entry_markdown(entry: Entry) -> str:
    """Markdown detail card for one entry."""
    info = MOODS[entry.mood]
    lines = [
        f"*{entry.date.strftime('%B %d, %Y')}*",
        f"**{info.label}** _{info.desc}_",
        "",
        entry.note or f"_{EMPTY_NOTE}_",
    ]
    if entry.images:
        lines += ["", f"{len(entry.images)} image(s) attached"]
    return "\n".join(lines)


def month_markdown(entries: list[Entry], year: int, month: int) -> str:
    """Month timeline wrapped in a code block so columns line up."""
    return f"```\n{format_month(entries, year, month)}\n```"


async def send_markdown(target, text: str, *, chat_id: int | None = None):
    """Send markdown, converted to MarkdownV2 and split into chunks.

    target: a Bot (pass chat_id) or an Update.message (replies).
    """
    converted = telegramify_markdown.markdownify(text)
    for start in range(0, len(converted), CHUNK_SIZE):
        chunk = converted[start : start + CHUNK_SIZE]
        if chat_id is None:
            await target.reply_text(chunk, parse_mode="MarkdownV2")
        else:
            await target.send_message(chat_id=chat_id, text=chunk, parse_mode="MarkdownV2")
