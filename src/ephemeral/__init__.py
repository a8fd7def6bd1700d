"""Ephemeral - one mood, one note, up to three images per day."""

__version__ = "0.1.0"
