"""Error taxonomy for the entry sync layer."""


class EphemeralError(Exception):
    """Base class for all Ephemeral errors."""


class AuthError(EphemeralError):
    """Raised when sign-in or sign-up is rejected (bad credentials, duplicate account)."""


class NotAuthenticatedError(EphemeralError):
    """Raised when an entry operation is attempted without a signed-in identity."""

    def __init__(self, message: str = "Please log in to start archiving your journey."):
        super().__init__(message)


class ValidationError(EphemeralError):
    """Raised for input rejected before any remote call is made."""


class MissingMoodError(ValidationError):
    """Raised when saving without a mood."""

    def __init__(self, message: str = "Pick a mood before saving."):
        super().__init__(message)


class AttachmentCapacityError(ValidationError):
    """Raised when an attachment batch would exceed the per-entry limit."""

    def __init__(self, current: int, adding: int, limit: int):
        self.current = current
        self.adding = adding
        self.limit = limit
        super().__init__(
            f"An entry holds at most {limit} images "
            f"({current} attached, {adding} selected)."
        )


class InvalidAttachmentError(ValidationError):
    """Raised when a selected file is not an image."""


class EntryNotFoundError(ValidationError):
    """Raised when editing or deleting a date that has no entry."""


class RemoteError(EphemeralError):
    """
    Raised when the remote store or auth service fails.

    `transient` is True for failures worth retrying (network, timeout,
    rate limiting, server errors).
    """

    def __init__(self, message: str, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class OwnershipError(EphemeralError):
    """Raised when an operation is unscoped or targets another identity's data."""
