"""
Web3 setup helper - web3 instance and on-chain delegation lookup.

Public API
----------
get_web3_instance(rpc_url=None)
    Return a Web3 instance connected to the specified RPC URL.
    Falls back to the RPC_URL environment variable.
read_delegation_designator(w3, address)
    Delegate address installed on ``address`` by EIP-7702, or None.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from web3 import Web3

from ..config.network import RPC_TIMEOUT
from ..config.settings import DELEGATION_DESIGNATOR_PREFIX
from .codec import ADDRESS_LENGTH, checksum_address

__all__ = ["get_web3_instance", "parse_delegation_designator", "read_delegation_designator"]

logger = logging.getLogger(__name__)

# Cached web3 instance
_w3_instance: Optional[Web3] = None


def get_web3_instance(rpc_url: str | None = None) -> Web3:
    """
    Get a Web3 instance connected to the specified RPC URL.

    Raises:
        RuntimeError: If no RPC URL is available
    """
    global _w3_instance

    if rpc_url is None:
        rpc_url = os.getenv("RPC_URL")

    if rpc_url is None:
        raise RuntimeError("No RPC URL available. Set RPC_URL environment variable.")

    if _w3_instance is not None and _w3_instance.provider.endpoint_uri == rpc_url:
        return _w3_instance

    _w3_instance = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": RPC_TIMEOUT}))
    return _w3_instance


def parse_delegation_designator(code: bytes) -> str | None:
    """``0xef0100 || delegate`` -> checksummed delegate; anything else -> None."""
    code = bytes(code)
    prefix_len = len(DELEGATION_DESIGNATOR_PREFIX)
    if not code.startswith(DELEGATION_DESIGNATOR_PREFIX):
        return None
    if len(code) < prefix_len + ADDRESS_LENGTH:
        return None
    return checksum_address(code[prefix_len:prefix_len + ADDRESS_LENGTH])


def read_delegation_designator(w3: Web3, address: str) -> str | None:
    """Read account code and decode the delegation designator; RPC errors read as None."""
    try:
        code = w3.eth.get_code(Web3.to_checksum_address(address))
    except Exception as e:
        logger.warning("Could not read code for %s: %s", address, e)
        return None
    return parse_delegation_designator(code)
