"""Supabase table (PostgREST) adapter - HTTP client for entry records."""

import asyncio
import logging
from datetime import date

import requests

from ephemeral.config import Config, load_config
from ephemeral.errors import AuthError, OwnershipError, RemoteError

from .supabase_auth import SupabaseAuthAdapter, _error_message

logger = logging.getLogger(__name__)

CONFLICT_TARGET = "user_id,date"


class SupabaseEntryStore:
    """
    Supabase entries table adapter.

    Implements EntryStore protocol. Every request is scoped by owner id;
    an unscoped call is refused before it leaves the process.
    """

    def __init__(
        self,
        auth: SupabaseAuthAdapter,
        config: Config | None = None,
        http_session: requests.Session | None = None,
    ):
        self.auth = auth
        self.config = config or load_config()
        self._http = http_session or requests.Session()

    @property
    def _table_url(self) -> str:
        return f"{self.config.supabase_url}/rest/v1/{self.config.entries_table}"

    def _request(self, method: str, token: str, params: dict, payload=None,
                 prefer: str | None = None) -> list | None:
        """Make authenticated table request."""
        headers = {
            "apikey": self.config.supabase_anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer

        try:
            resp = self._http.request(
                method,
                self._table_url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self.config.request_timeout,
            )
        except requests.Timeout:
            raise RemoteError("Entry store timed out", transient=True)
        except requests.ConnectionError as e:
            raise RemoteError(f"Could not reach entry store: {e}", transient=True)

        if resp.status_code >= 400:
            transient = resp.status_code in (408, 429) or resp.status_code >= 500
            message = _error_message(resp)
            logger.error(f"{method} {self.config.entries_table} failed ({resp.status_code}): {message}")
            raise RemoteError(message, transient=transient)

        if not resp.content:
            return None
        return resp.json()

    async def _token(self) -> str:
        try:
            return await self.auth.access_token()
        except AuthError as e:
            raise RemoteError(str(e), transient=False) from e

    async def select_for_owner(self, owner_id: str) -> list[dict]:
        _require_owner(owner_id)
        token = await self._token()
        rows = await asyncio.to_thread(
            self._request, "GET", token, {"select": "*", "user_id": f"eq.{owner_id}"}
        )
        return rows or []

    async def upsert(self, record: dict) -> dict:
        _require_owner(record.get("user_id"))
        token = await self._token()
        rows = await asyncio.to_thread(
            self._request,
            "POST",
            token,
            {"on_conflict": CONFLICT_TARGET},
            record,
            "resolution=merge-duplicates,return=representation",
        )
        return rows[0] if rows else record

    async def delete(self, owner_id: str, day: date) -> None:
        _require_owner(owner_id)
        token = await self._token()
        await asyncio.to_thread(
            self._request,
            "DELETE",
            token,
            {"user_id": f"eq.{owner_id}", "date": f"eq.{day.isoformat()}"},
        )


def _require_owner(owner_id: str | None) -> None:
    if not owner_id:
        raise OwnershipError("Refusing an entry request that is not scoped to an owner")
