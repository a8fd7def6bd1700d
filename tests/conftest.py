"""Shared fixtures: in-memory stand-ins for the remote store and auth service."""

import asyncio
from collections import Counter
from datetime import date

import pytest

from ephemeral.core.identity import AuthSession, Identity
from ephemeral.errors import AuthError, RemoteError
from ephemeral.journal import Journal


class FakeEntryStore:
    """
    Entries table keyed by (user_id, date), like the real unique constraint.

    `upsert_gates` holds one optional Event per upcoming upsert call; a call
    waits on its gate before writing, so tests control completion order.
    `select_gates` does the same per owner for selects.
    `failing_selects` makes that many upcoming selects fail.
    """

    def __init__(self):
        self.records: dict[tuple[str, str], dict] = {}
        self.calls: Counter = Counter()
        self.fail_with: RemoteError | None = None
        self.failing_selects = 0
        self.leak_all_owners = False
        self.upsert_gates: list[asyncio.Event | None] = []
        self.select_gates: dict[str, asyncio.Event] = {}

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def select_for_owner(self, owner_id):
        self.calls["select"] += 1
        gate = self.select_gates.get(owner_id)
        if gate is not None:
            await gate.wait()
        if self.failing_selects:
            self.failing_selects -= 1
            raise RemoteError("offline")
        self._maybe_fail()
        return [
            dict(record, images=list(record["images"]))
            for (owner, _), record in sorted(self.records.items())
            if self.leak_all_owners or owner == owner_id
        ]

    async def upsert(self, record):
        self.calls["upsert"] += 1
        gate = self.upsert_gates.pop(0) if self.upsert_gates else None
        if gate is not None:
            await gate.wait()
        self._maybe_fail()
        stored = dict(record, images=list(record["images"]))
        self.records[(record["user_id"], record["date"])] = stored
        return dict(stored)

    async def delete(self, owner_id, day):
        self.calls["delete"] += 1
        self._maybe_fail()
        self.records.pop((owner_id, day.isoformat()), None)

    def rows_for(self, owner_id):
        return [r for (owner, _), r in self.records.items() if owner == owner_id]


class FakeSubscription:
    def __init__(self, auth, listener):
        self.auth = auth
        self.listener = listener

    def unsubscribe(self):
        if self.listener in self.auth.listeners:
            self.auth.listeners.remove(self.listener)


class FakeAuth:
    """Password auth over a dict of email -> password."""

    def __init__(self, users=None, current=None):
        self.users = dict(users or {})
        self.current = current
        self.listeners = []
        self.calls: Counter = Counter()

    @staticmethod
    def session_for(email):
        return AuthSession(
            identity=Identity(id=f"u-{email.split('@')[0]}", email=email),
            access_token=f"token-{email}",
        )

    async def _emit(self, event, session):
        for listener in list(self.listeners):
            await listener(event, session)

    async def sign_in_with_password(self, email, password):
        self.calls["sign_in"] += 1
        if self.users.get(email) != password:
            raise AuthError("Invalid login credentials")
        self.current = self.session_for(email)
        await self._emit("SIGNED_IN", self.current)
        return self.current

    async def sign_up(self, email, password):
        self.calls["sign_up"] += 1
        if email in self.users:
            raise AuthError("User already registered")
        self.users[email] = password
        self.current = self.session_for(email)
        await self._emit("SIGNED_IN", self.current)
        return self.current

    async def sign_out(self):
        self.calls["sign_out"] += 1
        self.current = None
        await self._emit("SIGNED_OUT", None)

    async def get_session(self):
        self.calls["get_session"] += 1
        return self.current

    def on_auth_state_change(self, listener):
        self.listeners.append(listener)
        return FakeSubscription(self, listener)


@pytest.fixture
def today():
    return date(2024, 3, 1)


@pytest.fixture
def store():
    return FakeEntryStore()


@pytest.fixture
def auth():
    return FakeAuth(users={"u1@example.com": "pw1", "u2@example.com": "pw2"})


@pytest.fixture
def journal(auth, store, today):
    return Journal(auth, store, today=lambda: today, ack_seconds=0.05)


@pytest.fixture
def png(tmp_path):
    """Factory writing small fake image files."""

    def make(name="photo.png", payload=b"\x89PNG\r\n\x1a\nfake"):
        path = tmp_path / name
        path.write_bytes(payload)
        return path

    return make
