"""Authenticated identity and session values."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """An authenticated user reference. Scopes all entry data."""

    id: str
    email: str = ""

    @property
    def display_name(self) -> str:
        """Local part of the email, or the id when there is no email."""
        if self.email:
            return self.email.split("@")[0]
        return self.id

    @property
    def initial(self) -> str:
        return self.display_name[:1]


@dataclass
class AuthSession:
    """A live auth session as reported by the auth collaborator."""

    identity: Identity
    access_token: str
    refresh_token: str = ""
    expires_at: int = 0
