"""Session manager - owns the current identity and announces transitions."""

import logging
from typing import Awaitable, Callable

from .core.identity import AuthSession, Identity
from .errors import AuthError, NotAuthenticatedError, RemoteError
from .ports.auth_service import AuthService, Subscription

logger = logging.getLogger(__name__)

SessionListener = Callable[[Identity | None, Identity | None], Awaitable[None]]


class SessionManager:
    """
    Tracks the signed-in identity and notifies listeners on every change.

    Each transition bumps `generation`; work started under an older
    generation belongs to a previous identity and must not be applied.
    """

    def __init__(self, auth: AuthService):
        self.auth = auth
        self._identity: Identity | None = None
        self._generation = 0
        self._listeners: list[SessionListener] = []
        self._subscription: Subscription | None = None

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def generation(self) -> int:
        return self._generation

    def require_identity(self) -> Identity:
        if self._identity is None:
            raise NotAuthenticatedError()
        return self._identity

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register for (old, new) identity transitions. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Adopt any existing session, then follow live auth changes."""
        if self._subscription is not None:
            return
        session = await self.auth.get_session()
        if session is not None:
            await self._transition(session.identity)
        self._subscription = self.auth.on_auth_state_change(self._on_auth_event)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _on_auth_event(self, event: str, session: AuthSession | None) -> None:
        logger.debug(f"Auth event {event}")
        await self._transition(session.identity if session else None)

    async def _transition(self, new: Identity | None) -> None:
        old = self._identity
        if old == new:
            return
        self._identity = new
        self._generation += 1
        if new is None:
            logger.info(f"Signed out {old.email or old.id}")
        else:
            logger.info(f"Signed in as {new.email or new.id}")
        for listener in list(self._listeners):
            await listener(old, new)

    # ============== Session establishment ==============

    async def sign_in(self, email: str, password: str) -> str | None:
        """Sign in. Returns an error message for display, or None on success."""
        if not email or not password:
            return "Fill in all fields."
        try:
            session = await self.auth.sign_in_with_password(email, password)
        except (AuthError, RemoteError) as e:
            logger.warning(f"Sign-in failed for {email}: {e}")
            return str(e)
        await self._follow(session.identity)
        return None

    async def sign_up(self, email: str, password: str) -> str | None:
        """Create an account. Returns an error message for display, or None on success."""
        if not email or not password:
            return "Fill in all fields."
        try:
            session = await self.auth.sign_up(email, password)
        except (AuthError, RemoteError) as e:
            logger.warning(f"Sign-up failed for {email}: {e}")
            return str(e)
        if session is not None:
            await self._follow(session.identity)
        return None

    async def sign_out(self) -> None:
        await self.auth.sign_out()
        await self._follow(None)

    async def _follow(self, identity: Identity | None) -> None:
        """Apply a transition ourselves when no live subscription will report it."""
        # Subscribed: the auth event already applied it, and a late result must not undo a newer one
        if self._subscription is None:
            await self._transition(identity)
