"""Timeline formatting - calendar views over cached entries.

Pure functions - no I/O.
"""

import calendar
from datetime import date

from .entries import Entry, greeting_for
from .moods import MOODS, Mood

EMPTY_NOTE = "No notes for this day."


def format_mood_line(mood: Mood) -> str:
    info = MOODS[mood]
    return f"{info.label} - {info.desc}"


def format_entry(entry: Entry) -> str:
    """Detail view of a single entry."""
    info = MOODS[entry.mood]
    lines = [
        entry.date.strftime("%B %d, %Y"),
        info.label,
        "",
        entry.note or EMPTY_NOTE,
    ]
    if entry.images:
        lines.append("")
        lines.append(f"{len(entry.images)} image(s) attached")
    return "\n".join(lines)


def format_month(entries: list[Entry], year: int, month: int) -> str:
    """
    Month view: one line per day that has an entry.

    Days without entries are omitted; an empty month says so.
    """
    title = f"{calendar.month_name[month]} {year}"
    in_month = sorted(
        (e for e in entries if e.date.year == year and e.date.month == month),
        key=lambda e: e.date,
    )
    if not in_month:
        return f"{title}\n\nNo entries this month."

    lines = [title, ""]
    for entry in in_month:
        note = entry.note.splitlines()[0] if entry.note else ""
        if len(note) > 50:
            note = note[:47] + "..."
        marker = f" [{len(entry.images)} img]" if entry.images else ""
        lines.append(
            f"{entry.date.strftime('%a %d')}  {MOODS[entry.mood].label:<16}{marker} {note}".rstrip()
        )
    return "\n".join(lines)


def mood_counts(entries: list[Entry]) -> dict[Mood, int]:
    """Count entries per mood, in mood order."""
    counts = {m: 0 for m in Mood}
    for entry in entries:
        counts[entry.mood] += 1
    return counts


def format_today_header(today: date, hour: int) -> str:
    return f"{today.strftime('%A, %B %d, %Y')}\n{greeting_for(hour)}"
