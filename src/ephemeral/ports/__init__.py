"""Ports - interfaces/protocols for external dependencies."""

from .entry_store import EntryStore
from .auth_service import AuthService, AuthListener, Subscription

__all__ = [
    "EntryStore",
    "AuthService",
    "AuthListener",
    "Subscription",
]
