"""Shared workflow layer between CLI and Telegram.

Builds a Journal wired to the configured remote store and resolves
"today" in the configured timezone.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .adapters.supabase_auth import SupabaseAuthAdapter
from .adapters.supabase_store import SupabaseEntryStore
from .config import Config, load_config
from .journal import Journal

logger = logging.getLogger(__name__)


def today_in(timezone: str) -> Callable[[], date]:
    """Return a clock giving the calendar day in `timezone`."""
    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {timezone!r}, using local time")
        return date.today

    def today() -> date:
        return datetime.now(tz).date()

    return today


def build_journal(config: Config | None = None, session_path: Path | None = None) -> Journal:
    """Create a Journal backed by Supabase auth and the entries table."""
    config = config or load_config()
    auth = SupabaseAuthAdapter(config, session_path=session_path)
    store = SupabaseEntryStore(auth, config)
    return Journal(
        auth,
        store,
        today=today_in(config.timezone),
        ack_seconds=config.saved_ack_seconds,
    )


async def open_journal(config: Config | None = None) -> Journal:
    """Build a Journal and adopt any stored session (fetching its entries)."""
    journal = build_journal(config)
    await journal.start()
    return journal
