"""
Batch call assembly.

A batch is an ordered list of ``BatchCall`` values executed atomically by the
delegate contract. Token calldata is built from fixed selectors and 32-byte
left-padded words, so no ABI is needed for the common operations.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..config.abis.erc20 import (
    APPROVE_SELECTOR,
    BUY_TOKEN_SELECTOR,
    DISPOSE_TOKEN_SELECTOR,
    SELL_TOKEN_SELECTOR,
    TRANSFER_FROM_SELECTOR,
    TRANSFER_SELECTOR,
)
from .codec import (
    ADDRESS_LENGTH,
    UINT256_MAX,
    bytes_to_hex,
    checksum_address,
    hex_to_bytes,
    left_pad_32,
    to_bytes,
    uint256_to_bytes,
)
from .errors import EncodingError

__all__ = [
    "BatchCall",
    "BatchCallBuilder",
    "encode_transfer",
    "encode_transfer_from",
    "encode_approve",
    "encode_buy_token",
    "encode_sell_token",
    "encode_dispose_token",
]


@dataclass(frozen=True)
class BatchCall:
    """One call in a batch: target, calldata and native value in wei."""
    to: str
    data: bytes = b""
    value: int = 0

    def __post_init__(self):
        object.__setattr__(self, "to", checksum_address(self.to))
        object.__setattr__(self, "data", to_bytes(self.data))
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise EncodingError(f"call value must be an int, got {self.value!r}")
        if self.value < 0 or self.value > UINT256_MAX:
            raise EncodingError(f"call value out of uint256 range: {self.value}")

    @property
    def data_hex(self) -> str:
        return bytes_to_hex(self.data)

    def to_payload(self) -> list[str]:
        """``[to, value, data]`` in the relay's wire form."""
        return [self.to, str(self.value), self.data_hex]


def _address_word(address: str | bytes) -> bytes:
    # Recipients shorter than 20 bytes are left-padded, not rejected.
    raw = hex_to_bytes(address) if isinstance(address, str) else bytes(address)
    if len(raw) > ADDRESS_LENGTH:
        raise EncodingError(f"address longer than {ADDRESS_LENGTH} bytes: {len(raw)}")
    return left_pad_32(raw)


def encode_transfer(to: str, amount: int) -> bytes:
    return TRANSFER_SELECTOR + _address_word(to) + uint256_to_bytes(amount)


def encode_transfer_from(sender: str, to: str, amount: int) -> bytes:
    return TRANSFER_FROM_SELECTOR + _address_word(sender) + _address_word(to) + uint256_to_bytes(amount)


def encode_approve(spender: str, amount: int) -> bytes:
    return APPROVE_SELECTOR + _address_word(spender) + uint256_to_bytes(amount)


def encode_buy_token(to: str, amount: int) -> bytes:
    return BUY_TOKEN_SELECTOR + _address_word(to) + uint256_to_bytes(amount)


def encode_sell_token(to: str, amount: int) -> bytes:
    return SELL_TOKEN_SELECTOR + _address_word(to) + uint256_to_bytes(amount)


def encode_dispose_token(amount: int) -> bytes:
    return DISPOSE_TOKEN_SELECTOR + uint256_to_bytes(amount)


class BatchCallBuilder:
    """Fluent builder; every ``add_*`` returns the builder."""

    def __init__(self):
        self.calls: list[BatchCall] = []

    def __len__(self) -> int:
        return len(self.calls)

    def add_call(self, to: str, data: str | bytes = b"", value: int = 0) -> "BatchCallBuilder":
        self.calls.append(BatchCall(to=to, data=to_bytes(data), value=value))
        return self

    def add_transfer(self, token: str, to: str, amount: int) -> "BatchCallBuilder":
        return self.add_call(token, encode_transfer(to, amount))

    def add_transfer_from(self, token: str, sender: str, to: str, amount: int) -> "BatchCallBuilder":
        return self.add_call(token, encode_transfer_from(sender, to, amount))

    def add_approve(self, token: str, spender: str, amount: int) -> "BatchCallBuilder":
        return self.add_call(token, encode_approve(spender, amount))

    def add_approve_unlimited(self, token: str, spender: str) -> "BatchCallBuilder":
        return self.add_approve(token, spender, UINT256_MAX)

    def add_buy_token(self, token: str, to: str, amount: int) -> "BatchCallBuilder":
        return self.add_call(token, encode_buy_token(to, amount))

    def add_sell_token(self, token: str, to: str, amount: int) -> "BatchCallBuilder":
        return self.add_call(token, encode_sell_token(to, amount))

    def add_dispose_token(self, token: str, amount: int) -> "BatchCallBuilder":
        return self.add_call(token, encode_dispose_token(amount))

    def build(self) -> list[BatchCall]:
        """Snapshot of the calls in insertion order."""
        return list(self.calls)

    def clear(self) -> "BatchCallBuilder":
        self.calls = []
        return self
