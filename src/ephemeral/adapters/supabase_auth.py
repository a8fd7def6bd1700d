"""Supabase Auth (GoTrue) adapter - HTTP client for session management."""

import asyncio
import logging
import time
from pathlib import Path

import requests

from ephemeral.config import Config, StoredSession, load_config
from ephemeral.core.identity import AuthSession, Identity
from ephemeral.errors import AuthError, RemoteError
from ephemeral.ports.auth_service import AuthListener

logger = logging.getLogger(__name__)

# Refresh tokens that expire within this many seconds
REFRESH_MARGIN = 300


class _Subscription:
    """Handle that detaches one listener from the adapter."""

    def __init__(self, adapter: "SupabaseAuthAdapter", listener: AuthListener):
        self._adapter = adapter
        self._listener = listener

    def unsubscribe(self) -> None:
        if self._listener in self._adapter._listeners:
            self._adapter._listeners.remove(self._listener)


class SupabaseAuthAdapter:
    """
    Supabase Auth adapter.

    Implements AuthService protocol. Handles password sign-in, sign-up,
    token refresh and sign-out, persists the session to disk, and notifies
    listeners of every transition. No business logic - just I/O.
    """

    def __init__(
        self,
        config: Config | None = None,
        session_path: Path | None = None,
        http_session: requests.Session | None = None,
    ):
        self.config = config or load_config()
        self.session_path = session_path
        self._http = http_session or requests.Session()
        self._current: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    # ============== HTTP ==============

    def _post(self, path: str, payload: dict | None = None, params: dict | None = None,
              token: str | None = None) -> dict:
        """Make an auth API request. Rejections raise AuthError."""
        if not self.config.supabase_url or not self.config.supabase_anon_key:
            raise AuthError("Missing Supabase credentials. Add them to config/ephemeral.conf")

        headers = {
            "apikey": self.config.supabase_anon_key,
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = self._http.post(
                f"{self.config.supabase_url}{path}",
                json=payload or {},
                params=params,
                headers=headers,
                timeout=self.config.request_timeout,
            )
        except requests.Timeout:
            raise RemoteError("Auth service timed out", transient=True)
        except requests.ConnectionError as e:
            raise RemoteError(f"Could not reach auth service: {e}", transient=True)

        if resp.status_code == 429 or resp.status_code >= 500:
            raise RemoteError(f"Auth service error ({resp.status_code})", transient=True)
        if resp.status_code >= 400:
            raise AuthError(_error_message(resp))

        if not resp.content:
            return {}
        return resp.json()

    # ============== Session bookkeeping ==============

    def _session_from(self, data: dict) -> AuthSession:
        user = data.get("user") or {}
        expires_at = data.get("expires_at") or int(time.time()) + data.get("expires_in", 3600)
        return AuthSession(
            identity=Identity(id=user["id"], email=user.get("email", "")),
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            expires_at=int(expires_at),
        )

    def _remember(self, session: AuthSession) -> None:
        self._current = session
        StoredSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            user_id=session.identity.id,
            email=session.identity.email,
        ).save(self.session_path)

    def _forget(self) -> None:
        self._current = None
        StoredSession.clear(self.session_path)

    async def _emit(self, event: str, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            await listener(event, session)

    async def _refresh(self, session: AuthSession) -> AuthSession:
        """Exchange the refresh token for a new access token."""
        if not session.refresh_token:
            raise AuthError("Session expired. Log in again.")
        data = await asyncio.to_thread(
            self._post,
            "/auth/v1/token",
            {"refresh_token": session.refresh_token},
            {"grant_type": "refresh_token"},
        )
        refreshed = self._session_from(data)
        self._remember(refreshed)
        logger.info(f"Refreshed session for {refreshed.identity.email or refreshed.identity.id}")
        await self._emit("TOKEN_REFRESHED", refreshed)
        return refreshed

    def _expiring(self, session: AuthSession) -> bool:
        return bool(session.expires_at) and time.time() >= session.expires_at - REFRESH_MARGIN

    # ============== AuthService ==============

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await asyncio.to_thread(
            self._post,
            "/auth/v1/token",
            {"email": email, "password": password},
            {"grant_type": "password"},
        )
        session = self._session_from(data)
        self._remember(session)
        await self._emit("SIGNED_IN", session)
        return session

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        data = await asyncio.to_thread(
            self._post, "/auth/v1/signup", {"email": email, "password": password}
        )
        # Projects with email confirmation enabled return no session yet
        if "access_token" not in data:
            logger.info(f"Account created for {email}; confirmation pending")
            return None
        session = self._session_from(data)
        self._remember(session)
        await self._emit("SIGNED_IN", session)
        return session

    async def sign_out(self) -> None:
        session = self._current
        if session is not None:
            try:
                await asyncio.to_thread(
                    self._post, "/auth/v1/logout", None, None, session.access_token
                )
            except (AuthError, RemoteError) as e:
                # The local session ends regardless; the token simply expires remotely
                logger.warning(f"Remote sign-out failed: {e}")
        self._forget()
        await self._emit("SIGNED_OUT", None)

    async def get_session(self) -> AuthSession | None:
        session = self._current
        if session is None:
            stored = StoredSession.load(self.session_path)
            if stored.is_empty:
                return None
            session = AuthSession(
                identity=Identity(id=stored.user_id, email=stored.email),
                access_token=stored.access_token,
                refresh_token=stored.refresh_token,
                expires_at=stored.expires_at,
            )
            self._current = session

        if self._expiring(session):
            try:
                session = await self._refresh(session)
            except AuthError as e:
                logger.warning(f"Stored session rejected: {e}")
                self._forget()
                return None
        return session

    def on_auth_state_change(self, listener: AuthListener) -> _Subscription:
        self._listeners.append(listener)
        return _Subscription(self, listener)

    async def access_token(self) -> str:
        """Bearer token for data requests, refreshed when close to expiry."""
        session = await self.get_session()
        if session is None:
            raise AuthError("Not logged in.")
        return session.access_token


def _error_message(resp: requests.Response) -> str:
    """Pull the human-readable message out of an error response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if not isinstance(data, dict):
        return f"HTTP {resp.status_code}"
    for key in ("error_description", "msg", "message", "error"):
        if data.get(key):
            return str(data[key])
    return f"HTTP {resp.status_code}"
