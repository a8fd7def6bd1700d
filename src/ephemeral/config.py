"""Configuration management for Ephemeral."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

EPHEMERAL_HOME = Path(os.environ.get("EPHEMERAL_HOME", Path.home() / "ephemeral"))
CONFIG_FILE = EPHEMERAL_HOME / "config" / "ephemeral.conf"
SESSION_FILE = EPHEMERAL_HOME / "config" / ".session.json"


@dataclass
class Config:
    """Ephemeral configuration."""

    supabase_url: str = ""
    supabase_anon_key: str = ""
    entries_table: str = "entries"
    request_timeout: float = 10.0
    saved_ack_seconds: float = 2.0
    timezone: str = "America/Toronto"
    # Telegram bot settings
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = field(default_factory=list)
    telegram_reminder_time: str = "21:00"


@dataclass
class StoredSession:
    """Persisted auth session (tokens plus the identity they belong to)."""

    access_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0
    user_id: str = ""
    email: str = ""

    def save(self, path: Path | None = None) -> None:
        """Save session to file."""
        path = path or SESSION_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(
                {
                    "access_token": self.access_token,
                    "refresh_token": self.refresh_token,
                    "expires_at": self.expires_at,
                    "user_id": self.user_id,
                    "email": self.email,
                }
            )
        )
        path.chmod(0o600)

    @classmethod
    def load(cls, path: Path | None = None) -> "StoredSession":
        """Load session from file. Returns an empty session if none is stored."""
        path = path or SESSION_FILE
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text())
            return cls(
                access_token=data.get("access_token", ""),
                refresh_token=data.get("refresh_token", ""),
                expires_at=data.get("expires_at", 0),
                user_id=data.get("user_id", ""),
                email=data.get("email", ""),
            )
        except (json.JSONDecodeError, KeyError):
            return cls()

    @staticmethod
    def clear(path: Path | None = None) -> None:
        """Remove the stored session."""
        path = path or SESSION_FILE
        path.unlink(missing_ok=True)

    @property
    def is_empty(self) -> bool:
        return not (self.access_token and self.user_id)


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from ephemeral.conf, then apply env overrides."""
    config = Config()
    path = path or CONFIG_FILE

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _unquote(value.strip())

            match key:
                case "supabase_url":
                    config.supabase_url = value.rstrip("/")
                case "supabase_anon_key":
                    config.supabase_anon_key = value
                case "entries_table":
                    config.entries_table = value
                case "request_timeout":
                    try:
                        config.request_timeout = float(value)
                    except ValueError:
                        logger.warning(f"Invalid REQUEST_TIMEOUT: {value}")
                case "saved_ack_seconds":
                    try:
                        config.saved_ack_seconds = float(value)
                    except ValueError:
                        logger.warning(f"Invalid SAVED_ACK_SECONDS: {value}")
                case "timezone":
                    config.timezone = value
                case "telegram_bot_token":
                    config.telegram_bot_token = value
                case "telegram_allowed_users":
                    config.telegram_allowed_users = [int(u.strip()) for u in value.split(",") if u.strip()]
                case "telegram_reminder_time":
                    config.telegram_reminder_time = value

    # Environment wins over the file
    if os.environ.get("SUPABASE_URL"):
        config.supabase_url = os.environ["SUPABASE_URL"].rstrip("/")
    if os.environ.get("SUPABASE_ANON_KEY"):
        config.supabase_anon_key = os.environ["SUPABASE_ANON_KEY"]

    return config
