"""Conversation states for Telegram bot."""

from enum import IntEnum, auto


class WriteStates(IntEnum):
    """States for the write/edit entry conversation."""

    MOOD = auto()
    NOTE = auto()
    PHOTOS = auto()
