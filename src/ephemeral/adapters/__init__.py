"""Adapters - I/O implementations of ports."""

from .supabase_auth import SupabaseAuthAdapter
from .supabase_store import SupabaseEntryStore

__all__ = [
    "SupabaseAuthAdapter",
    "SupabaseEntryStore",
]
