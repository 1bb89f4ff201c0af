"""
Exception taxonomy for the gasless relay engine.

Every error raised by this package derives from :class:`GaslessError`.
"""

from __future__ import annotations


class GaslessError(Exception):
    """Base exception for gasless relay errors"""
    pass


class EncodingError(GaslessError, ValueError):
    """Malformed hex, wrong address length, negative integer or bad amount string."""
    pass


class AuthError(GaslessError):
    """Challenge fetch failed or the relay identified a different signer."""
    pass


class SigningError(GaslessError):
    """Invalid private key material."""
    pass


class RelayError(GaslessError):
    """Non-2xx relay response or a response missing required fields."""

    def __init__(self, message: str, status: int | None = None, payload: object = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (status: {self.status})"


class StateError(GaslessError):
    """Operation attempted before a required precondition holds."""
    pass
