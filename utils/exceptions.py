"""
Error types raised by the token service and the token store.

The HTTP layer maps these onto the uniform error envelope in api/errors.py.
"""


class TokenError(Exception):
    """Base class for credential failures surfaced as 401."""

    default_message = "Invalid token"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class InvalidToken(TokenError):
    """Malformed, expired, wrong type, bad signature, or unknown to the store."""

    default_message = "Invalid or expired token"


class RevokedToken(TokenError):
    """A refresh token that was already used or revoked was presented again."""

    default_message = "Token has been revoked"


class PersistenceError(Exception):
    """The store is unavailable or a write failed."""


class NotFoundError(Exception):
    """Store lookup miss."""
