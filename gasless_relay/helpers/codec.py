"""
Byte-level primitives shared by the authorization and batch digests.

Public API
----------
hex_to_bytes / bytes_to_hex
    Strict hex conversion (odd length or non-hex characters are rejected).
int_to_minimal_bytes / uint256_to_bytes
    Big-endian unsigned integer packing, minimal or fixed 32-byte width.
keccak256
    Keccak-256 (the pre-NIST variant Ethereum uses).
checksum_address
    EIP-55 mixed-case formatting.
rlp_encode_list
    RLP list encoding of byte strings and non-negative integers.
packed
    Non-standard packed encoding of address / uint256 / bytes values.
"""
from __future__ import annotations

import re
from typing import Any, Sequence

import rlp
from rlp.exceptions import RLPException
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_checksum_address

from .errors import EncodingError

__all__ = [
    "ADDRESS_LENGTH",
    "UINT256_MAX",
    "strip_0x",
    "hex_to_bytes",
    "bytes_to_hex",
    "to_bytes",
    "int_to_minimal_bytes",
    "uint256_to_bytes",
    "left_pad_32",
    "address_to_bytes",
    "keccak256",
    "checksum_address",
    "rlp_encode_list",
    "packed",
]

ADDRESS_LENGTH = 20
UINT256_MAX = (1 << 256) - 1

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def strip_0x(value: str) -> str:
    if value.startswith(("0x", "0X")):
        return value[2:]
    return value


def hex_to_bytes(value: str) -> bytes:
    """Decode a hex string, with or without ``0x`` prefix."""
    if not isinstance(value, str):
        raise EncodingError(f"expected hex string, got {type(value).__name__}")
    body = strip_0x(value.strip())
    if len(body) % 2 != 0:
        raise EncodingError(f"hex string has odd length: {value!r}")
    if not _HEX_RE.match(body):
        raise EncodingError(f"invalid hex characters in {value!r}")
    return bytes.fromhex(body)


def bytes_to_hex(data: bytes, prefix: bool = True) -> str:
    encoded = bytes(data).hex()
    return f"0x{encoded}" if prefix else encoded


def to_bytes(value: str | bytes | bytearray) -> bytes:
    """Accept raw bytes or a hex string and return bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return hex_to_bytes(value)


def _check_unsigned(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"expected integer, got {type(value).__name__}")
    if value < 0:
        raise EncodingError(f"unsigned integer cannot be negative: {value}")
    return value


def int_to_minimal_bytes(value: int) -> bytes:
    """Big-endian bytes without leading zeros; zero encodes as b''."""
    _check_unsigned(value)
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def uint256_to_bytes(value: int) -> bytes:
    _check_unsigned(value)
    if value > UINT256_MAX:
        raise EncodingError(f"value does not fit in uint256: {value}")
    return value.to_bytes(32, "big")


def left_pad_32(data: bytes) -> bytes:
    if len(data) > 32:
        raise EncodingError(f"cannot left-pad {len(data)} bytes to 32")
    return data.rjust(32, b"\x00")


def address_to_bytes(address: str | bytes) -> bytes:
    """Decode an address and require exactly 20 bytes."""
    raw = to_bytes(address)
    if len(raw) != ADDRESS_LENGTH:
        raise EncodingError(
            f"address must be {ADDRESS_LENGTH} bytes, got {len(raw)}: {address!r}"
        )
    return raw


def keccak256(data: bytes | bytearray) -> bytes:
    return keccak(primitive=bytes(data))


def checksum_address(address: str | bytes) -> str:
    """Format an address per EIP-55."""
    return to_checksum_address(bytes_to_hex(address_to_bytes(address)))


def rlp_encode_list(items: Sequence[bytes | int]) -> bytes:
    """
    RLP-encode a flat list.

    Integers are converted to their minimal big-endian form first, so zero
    becomes the empty string (0x80) and 256 becomes 0x820100.
    """
    encoded_items = []
    for item in items:
        if isinstance(item, int) and not isinstance(item, bool):
            encoded_items.append(int_to_minimal_bytes(item))
        elif isinstance(item, (bytes, bytearray)):
            encoded_items.append(bytes(item))
        else:
            raise EncodingError(f"cannot RLP-encode {type(item).__name__}")
    try:
        return rlp.encode(encoded_items)
    except RLPException as e:
        raise EncodingError(f"RLP encoding failed: {e}") from e


def packed(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """
    Concatenate values without length prefixes.

    ``address`` is 20 raw bytes, ``uint256`` is 32 bytes big-endian and
    ``bytes`` is its raw content.
    """
    if len(types) != len(values):
        raise EncodingError(f"got {len(types)} types for {len(values)} values")

    normalized: list[Any] = []
    for type_name, value in zip(types, values):
        if type_name == "address":
            normalized.append(address_to_bytes(value))
        elif type_name == "uint256":
            if isinstance(value, str):
                try:
                    value = int(value, 0) if value.startswith(("0x", "0X")) else int(value)
                except ValueError as e:
                    raise EncodingError(f"invalid uint256 string: {value!r}") from e
            _check_unsigned(value)
            if value > UINT256_MAX:
                raise EncodingError(f"value does not fit in uint256: {value}")
            normalized.append(value)
        elif type_name == "bytes":
            normalized.append(to_bytes(value))
        else:
            raise EncodingError(f"unsupported packed type: {type_name}")

    try:
        return encode_packed(list(types), normalized)
    except AbiEncodingError as e:
        raise EncodingError(f"packed encoding failed: {e}") from e
