"""Auth collaborator interface."""

from typing import Awaitable, Callable, Protocol

from ephemeral.core.identity import AuthSession

AuthListener = Callable[[str, AuthSession | None], Awaitable[None]]


class Subscription(Protocol):
    """Handle returned by on_auth_state_change."""

    def unsubscribe(self) -> None:
        ...


class AuthService(Protocol):
    """Interface for establishing and observing auth sessions."""

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Establish a session. Raises AuthError on bad credentials."""
        ...

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        """Create an account. Returns a session if the service signs in immediately."""
        ...

    async def sign_out(self) -> None:
        """End the current session."""
        ...

    async def get_session(self) -> AuthSession | None:
        """Return the already-established session, if any."""
        ...

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        """Register for (event, session) notifications on every transition."""
        ...
