"""
Executor settings.

Values come from explicit arguments or from the environment (a local ``.env``
file is loaded first when present).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .network import CHAIN_ID_TO_NAME, RELAY_TIMEOUT, get_chain_id, get_relay_url, get_rpc_url
from ..helpers.codec import checksum_address

# Auth headers are reused for this long after signing the relay challenge
SESSION_TTL: float = 4 * 60 * 60
# Gold price quote lifetime
PRICE_CACHE_TTL: float = 5 * 60
# Used until the token's real decimals have been read
DEFAULT_TOKEN_DECIMALS: int = 6

# 0x05 || rlp([chain_id, address, nonce])
AUTHORIZATION_MAGIC: bytes = b"\x05"
# Code of a delegated EOA is 0xef0100 || delegate address
DELEGATION_DESIGNATOR_PREFIX: bytes = b"\xef\x01\x00"


@dataclass(frozen=True)
class ExecutorConfig:
    """Static configuration for one executor instance."""
    relay_url: str
    delegate_address: str
    rpc_url: str | None = None
    token_address: str | None = None
    chain_id: int = 80002
    public_api_key: str | None = None
    request_timeout: float = RELAY_TIMEOUT

    def __post_init__(self):
        object.__setattr__(self, "relay_url", self.relay_url.rstrip("/"))
        object.__setattr__(self, "delegate_address", checksum_address(self.delegate_address))
        if self.token_address:
            object.__setattr__(self, "token_address", checksum_address(self.token_address))

    @classmethod
    def from_env(cls) -> "ExecutorConfig":
        """Build config from environment variables.

        Raises:
            ValueError: If DELEGATE_ADDRESS is missing
        """
        load_dotenv()

        delegate = os.getenv("DELEGATE_ADDRESS")
        if not delegate:
            raise ValueError("Missing required environment variable: DELEGATE_ADDRESS")

        chain_env = os.getenv("CHAIN_ID")
        chain_id = int(chain_env) if chain_env else get_chain_id()

        return cls(
            relay_url=get_relay_url(),
            delegate_address=delegate,
            rpc_url=os.getenv("RPC_URL") or (get_rpc_url(chain_id) if chain_id in CHAIN_ID_TO_NAME else None),
            token_address=os.getenv("TOKEN_ADDRESS") or None,
            chain_id=chain_id,
            public_api_key=os.getenv("RELAY_PUBLIC_API_KEY") or None,
            request_timeout=float(os.getenv("RELAY_TIMEOUT", RELAY_TIMEOUT)),
        )
