"""
Relay session headers.

The relay authenticates a wallet by challenge/response: it hands out a
one-time text message, the wallet personal-signs it, and the triple
(message, signature, address) is sent as headers on every authenticated call.
A session stays valid for ``SESSION_TTL`` and belongs to a single address.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config.settings import SESSION_TTL
from .cache import Clock
from .errors import AuthError, RelayError
from .signing import PrivateKey, address_from_key, sign_personal_text

if TYPE_CHECKING:
    from .relay_client import RelayClient

logger = logging.getLogger(__name__)

__all__ = ["AuthHeaders", "AuthSession"]


@dataclass(frozen=True)
class AuthHeaders:
    message: str
    signature: str
    address: str
    created_at: float

    def as_dict(self) -> dict[str, str]:
        return {
            "x-message": self.message,
            "x-signature": self.signature,
            "x-address": self.address,
        }


class AuthSession:
    """Caches one signed challenge per executor, refreshing it on expiry or key change."""

    def __init__(self, relay: "RelayClient", ttl: float = SESSION_TTL, clock: Clock = time.time):
        self.relay = relay
        self.ttl = ttl
        self.clock = clock
        self._headers: AuthHeaders | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> AuthHeaders | None:
        return self._headers

    @property
    def address(self) -> str | None:
        return self._headers.address if self._headers else None

    def is_valid_for(self, address: str) -> bool:
        headers = self._headers
        if headers is None:
            return False
        if headers.address.lower() != address.lower():
            return False
        return self.clock() - headers.created_at < self.ttl

    def invalidate(self) -> None:
        if self._headers is not None:
            logger.debug("Auth session for %s invalidated", self._headers.address)
        self._headers = None

    async def obtain_headers(self, private_key: PrivateKey) -> dict[str, str]:
        """
        Headers for the key's address, signing a fresh challenge when needed.

        Raises SigningError for a malformed key and AuthError when the relay
        challenge cannot be fetched.
        """
        address = address_from_key(private_key)
        if self.is_valid_for(address):
            return self._headers.as_dict()

        async with self._lock:
            if self.is_valid_for(address):
                return self._headers.as_dict()

            try:
                message = await self.relay.get_random_message(address)
            except RelayError as e:
                raise AuthError(f"Failed to get auth message: {e}") from e

            signature = sign_personal_text(private_key, message)
            self._headers = AuthHeaders(
                message=message,
                signature=signature,
                address=address,
                created_at=self.clock(),
            )
            logger.info("Signed new relay session for %s", address)
            return self._headers.as_dict()
