"""Functional core - pure business logic with no I/O."""

from .moods import Mood, MoodInfo, MOODS
from .identity import Identity, AuthSession
from .entries import Entry, Attachment, MAX_ATTACHMENTS, greeting_for
from .cache import EntryCache
from .draft import Draft, check_capacity
from .timeline import format_entry, format_month, mood_counts

__all__ = [
    # Moods
    "Mood",
    "MoodInfo",
    "MOODS",
    # Identity
    "Identity",
    "AuthSession",
    # Entries
    "Entry",
    "Attachment",
    "MAX_ATTACHMENTS",
    "greeting_for",
    "EntryCache",
    # Draft
    "Draft",
    "check_capacity",
    # Timeline
    "format_entry",
    "format_month",
    "mood_counts",
]
