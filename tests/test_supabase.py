"""Tests for the Supabase auth and entry store adapters."""

import asyncio
import time
from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from ephemeral.adapters.supabase_auth import SupabaseAuthAdapter
from ephemeral.adapters.supabase_store import SupabaseEntryStore
from ephemeral.config import Config, StoredSession
from ephemeral.errors import AuthError, OwnershipError, RemoteError


def response(status=200, payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.content = b"" if payload is None else b"{}"
    resp.json.return_value = payload
    resp.text = ""
    return resp


def token_payload(user_id="user-1", email="a@example.com", expires_in=3600):
    return {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "expires_in": expires_in,
        "user": {"id": user_id, "email": email},
    }


@pytest.fixture
def config():
    return Config(supabase_url="https://proj.supabase.co", supabase_anon_key="anon-key")


@pytest.fixture
def session_path(tmp_path):
    return tmp_path / ".session.json"


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def auth_adapter(config, session_path, http):
    return SupabaseAuthAdapter(config, session_path=session_path, http_session=http)


class TestSupabaseAuthAdapter:
    def test_sign_in_posts_password_grant(self, auth_adapter, http, session_path):
        http.post.return_value = response(200, token_payload())
        events = []

        async def listener(event, session):
            events.append((event, session.identity.id if session else None))

        auth_adapter.on_auth_state_change(listener)
        session = asyncio.run(auth_adapter.sign_in_with_password("a@example.com", "pw"))

        args, kwargs = http.post.call_args
        assert args[0] == "https://proj.supabase.co/auth/v1/token"
        assert kwargs["params"] == {"grant_type": "password"}
        assert kwargs["json"] == {"email": "a@example.com", "password": "pw"}
        assert kwargs["headers"]["apikey"] == "anon-key"

        assert session.identity.id == "user-1"
        assert events == [("SIGNED_IN", "user-1")]
        stored = StoredSession.load(session_path)
        assert stored.user_id == "user-1"
        assert stored.access_token == "access-1"

    def test_bad_credentials(self, auth_adapter, http, session_path):
        http.post.return_value = response(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
        with pytest.raises(AuthError, match="Invalid login credentials"):
            asyncio.run(auth_adapter.sign_in_with_password("a@example.com", "nope"))
        assert not session_path.exists()

    def test_duplicate_signup(self, auth_adapter, http):
        http.post.return_value = response(422, {"msg": "User already registered"})
        with pytest.raises(AuthError, match="User already registered"):
            asyncio.run(auth_adapter.sign_up("a@example.com", "pw"))

    def test_signup_pending_confirmation(self, auth_adapter, http, session_path):
        http.post.return_value = response(200, {"id": "user-1", "email": "a@example.com"})
        assert asyncio.run(auth_adapter.sign_up("a@example.com", "pw")) is None
        assert not session_path.exists()

    def test_server_error_is_transient(self, auth_adapter, http):
        http.post.return_value = response(503, {"message": "unavailable"})
        with pytest.raises(RemoteError) as exc:
            asyncio.run(auth_adapter.sign_in_with_password("a@example.com", "pw"))
        assert exc.value.transient is True

    def test_connection_error_is_transient(self, auth_adapter, http):
        http.post.side_effect = requests.ConnectionError("boom")
        with pytest.raises(RemoteError) as exc:
            asyncio.run(auth_adapter.sign_in_with_password("a@example.com", "pw"))
        assert exc.value.transient is True

    def test_missing_credentials(self, session_path, http):
        adapter = SupabaseAuthAdapter(Config(), session_path=session_path, http_session=http)
        with pytest.raises(AuthError, match="Missing Supabase credentials"):
            asyncio.run(adapter.sign_in_with_password("a@example.com", "pw"))
        http.post.assert_not_called()

    def test_get_session_loads_stored(self, auth_adapter, http, session_path):
        StoredSession(
            access_token="stored", refresh_token="r", expires_at=int(time.time()) + 3600,
            user_id="user-1", email="a@example.com",
        ).save(session_path)

        session = asyncio.run(auth_adapter.get_session())
        assert session.identity.email == "a@example.com"
        assert session.access_token == "stored"
        http.post.assert_not_called()

    def test_get_session_without_stored(self, auth_adapter):
        assert asyncio.run(auth_adapter.get_session()) is None

    def test_get_session_refreshes_expiring_token(self, auth_adapter, http, session_path):
        StoredSession(
            access_token="old", refresh_token="r", expires_at=int(time.time()) + 10,
            user_id="user-1", email="a@example.com",
        ).save(session_path)
        http.post.return_value = response(200, token_payload())

        session = asyncio.run(auth_adapter.get_session())

        assert http.post.call_args.kwargs["params"] == {"grant_type": "refresh_token"}
        assert session.access_token == "access-1"
        assert StoredSession.load(session_path).access_token == "access-1"

    def test_get_session_drops_rejected_refresh(self, auth_adapter, http, session_path):
        StoredSession(
            access_token="old", refresh_token="r", expires_at=int(time.time()) - 10,
            user_id="user-1", email="a@example.com",
        ).save(session_path)
        http.post.return_value = response(400, {"error_description": "Invalid Refresh Token"})

        assert asyncio.run(auth_adapter.get_session()) is None
        assert not session_path.exists()

    def test_sign_out_clears_even_if_remote_fails(self, auth_adapter, http, session_path):
        http.post.return_value = response(200, token_payload())
        events = []

        async def listener(event, session):
            events.append(event)

        async def run():
            await auth_adapter.sign_in_with_password("a@example.com", "pw")
            http.post.side_effect = requests.Timeout()
            await auth_adapter.sign_out()

        auth_adapter.on_auth_state_change(listener)
        asyncio.run(run())
        assert events == ["SIGNED_IN", "SIGNED_OUT"]
        assert not session_path.exists()
        assert asyncio.run(auth_adapter.get_session()) is None

    def test_unsubscribe(self, auth_adapter, http):
        http.post.return_value = response(200, token_payload())
        events = []

        async def listener(event, session):
            events.append(event)

        auth_adapter.on_auth_state_change(listener).unsubscribe()
        asyncio.run(auth_adapter.sign_in_with_password("a@example.com", "pw"))
        assert events == []


@pytest.fixture
def signed_in_auth(session_path):
    auth = MagicMock()

    async def access_token():
        return "access-1"

    auth.access_token = access_token
    return auth


@pytest.fixture
def entry_store(signed_in_auth, config, http):
    return SupabaseEntryStore(signed_in_auth, config, http_session=http)


class TestSupabaseEntryStore:
    def test_select_is_scoped_to_owner(self, entry_store, http):
        rows = [{"user_id": "user-1", "date": "2024-03-01", "mood": "fun", "note": "", "images": []}]
        http.request.return_value = response(200, rows)

        assert asyncio.run(entry_store.select_for_owner("user-1")) == rows

        args, kwargs = http.request.call_args
        assert args == ("GET", "https://proj.supabase.co/rest/v1/entries")
        assert kwargs["params"] == {"select": "*", "user_id": "eq.user-1"}
        assert kwargs["headers"]["Authorization"] == "Bearer access-1"
        assert kwargs["headers"]["apikey"] == "anon-key"

    def test_upsert_targets_owner_date_conflict(self, entry_store, http):
        record = {"user_id": "user-1", "date": "2024-03-01", "mood": "fun", "note": "hi", "images": []}
        http.request.return_value = response(201, [dict(record, id=5)])

        stored = asyncio.run(entry_store.upsert(record))

        args, kwargs = http.request.call_args
        assert args[0] == "POST"
        assert kwargs["params"] == {"on_conflict": "user_id,date"}
        assert kwargs["json"] == record
        assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]
        assert stored["id"] == 5

    def test_delete_matches_owner_and_date(self, entry_store, http):
        http.request.return_value = response(204)

        asyncio.run(entry_store.delete("user-1", date(2024, 3, 1)))

        args, kwargs = http.request.call_args
        assert args[0] == "DELETE"
        assert kwargs["params"] == {"user_id": "eq.user-1", "date": "eq.2024-03-01"}

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.select_for_owner(""),
            lambda s: s.upsert({"date": "2024-03-01", "mood": "fun"}),
            lambda s: s.delete(None, date(2024, 3, 1)),
        ],
    )
    def test_unscoped_requests_never_leave(self, entry_store, http, call):
        with pytest.raises(OwnershipError):
            asyncio.run(call(entry_store))
        http.request.assert_not_called()

    def test_server_error_is_transient(self, entry_store, http):
        http.request.return_value = response(500, {"message": "db down"})
        with pytest.raises(RemoteError, match="db down") as exc:
            asyncio.run(entry_store.select_for_owner("user-1"))
        assert exc.value.transient is True

    def test_client_error_is_not_transient(self, entry_store, http):
        http.request.return_value = response(401, {"message": "JWT expired"})
        with pytest.raises(RemoteError) as exc:
            asyncio.run(entry_store.select_for_owner("user-1"))
        assert exc.value.transient is False

    def test_timeout_is_transient(self, entry_store, http):
        http.request.side_effect = requests.Timeout()
        with pytest.raises(RemoteError) as exc:
            asyncio.run(entry_store.upsert({"user_id": "user-1", "date": "2024-03-01"}))
        assert exc.value.transient is True

    def test_not_logged_in(self, config, http):
        auth = MagicMock()

        async def access_token():
            raise AuthError("Not logged in.")

        auth.access_token = access_token
        store = SupabaseEntryStore(auth, config, http_session=http)
        with pytest.raises(RemoteError) as exc:
            asyncio.run(store.select_for_owner("user-1"))
        assert exc.value.transient is False
        http.request.assert_not_called()
