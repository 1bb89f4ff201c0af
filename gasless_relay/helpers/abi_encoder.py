"""
ABI-driven calldata encoding.

Contract ABIs are served by the relay (``/abi/{address}``) and cached per
contract for the lifetime of the encoder; calldata is produced by web3.py's
contract function encoding.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from web3 import Web3

from .batch_builder import BatchCall
from .codec import checksum_address, to_bytes
from .errors import EncodingError

if TYPE_CHECKING:
    from .relay_client import RelayClient

logger = logging.getLogger(__name__)

__all__ = ["ContractCall", "AbiEncoder", "encode_function_call"]


@dataclass(frozen=True)
class ContractCall:
    """A method call described by name; encoded against the contract's ABI."""
    contract: str
    method: str
    params: Sequence[Any] = field(default_factory=tuple)
    value: int = 0


def encode_function_call(abi: list[dict[str, Any]], contract: str, method: str, params: Sequence[Any]) -> bytes:
    """Selector plus ABI-encoded arguments for ``method``."""
    address = checksum_address(contract)
    if not any(item.get("type") == "function" and item.get("name") == method for item in abi):
        raise EncodingError(f"Method {method} not found in ABI of {address}")

    contract_obj = Web3().eth.contract(address=address, abi=abi)
    try:
        data = contract_obj.functions[method](*params)._encode_transaction_data()
    except Exception as e:
        raise EncodingError(f"Cannot encode {method}{tuple(params)!r} for {address}: {e}") from e
    return to_bytes(data)


class AbiEncoder:
    """Fetches ABIs through the relay once per contract and encodes calls."""

    def __init__(self, relay: "RelayClient"):
        self.relay = relay
        self._abis: dict[str, list[dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def register_abi(self, contract: str, abi: list[dict[str, Any]]) -> None:
        """Seed a known ABI so the relay is never asked for it."""
        self._abis[checksum_address(contract)] = abi

    async def get_abi(self, contract: str) -> list[dict[str, Any]]:
        address = checksum_address(contract)
        if address in self._abis:
            return self._abis[address]
        async with self._lock:
            if address not in self._abis:
                logger.debug("Fetching ABI for %s", address)
                self._abis[address] = await self.relay.get_contract_abi(address)
            return self._abis[address]

    async def encode(self, call: ContractCall) -> BatchCall:
        abi = await self.get_abi(call.contract)
        data = encode_function_call(abi, call.contract, call.method, call.params)
        return BatchCall(to=call.contract, data=data, value=call.value)

    def clear(self) -> None:
        self._abis.clear()
