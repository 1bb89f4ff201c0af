"""
Signing primitives.

Two non-interchangeable modes are exposed:

* :func:`sign_raw` signs a 32-byte digest directly (EIP-7702 authorization).
* :func:`sign_personal` signs with the ``"\\x19Ethereum Signed Message:\\n"``
  prefix (relay challenges and batch execution digests).

A signature produced by one mode never verifies against the other.
"""
from __future__ import annotations

from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from .codec import bytes_to_hex, checksum_address, hex_to_bytes, uint256_to_bytes
from .errors import EncodingError, SigningError

__all__ = [
    "PrivateKey",
    "RawSignature",
    "load_account",
    "address_from_key",
    "sign_raw",
    "sign_personal",
    "sign_personal_text",
]

PrivateKey = str | bytes


@dataclass(frozen=True)
class RawSignature:
    """secp256k1 signature over an unprefixed digest."""
    r: int
    s: int
    v: int

    @property
    def r_hex(self) -> str:
        return bytes_to_hex(uint256_to_bytes(self.r))

    @property
    def s_hex(self) -> str:
        return bytes_to_hex(uint256_to_bytes(self.s))

    @property
    def y_parity(self) -> int:
        return self.v - 27

    def to_bytes(self) -> bytes:
        return uint256_to_bytes(self.r) + uint256_to_bytes(self.s) + bytes([self.v])


def load_account(private_key: PrivateKey) -> LocalAccount:
    """Build an eth-account signer, raising SigningError on malformed keys."""
    try:
        key_bytes = hex_to_bytes(private_key) if isinstance(private_key, str) else bytes(private_key)
    except (EncodingError, TypeError) as e:
        raise SigningError(f"malformed private key: {e}") from e
    if len(key_bytes) != 32:
        raise SigningError(f"private key must be 32 bytes, got {len(key_bytes)}")
    try:
        return Account.from_key(key_bytes)
    except Exception as e:
        raise SigningError(f"invalid private key: {e}") from e


def address_from_key(private_key: PrivateKey) -> str:
    """EIP-55 address of the key."""
    return checksum_address(load_account(private_key).address)


def sign_raw(private_key: PrivateKey, digest: bytes) -> RawSignature:
    """Sign ``digest`` as-is, with v normalized to {27, 28}."""
    if len(digest) != 32:
        raise EncodingError(f"digest must be 32 bytes, got {len(digest)}")
    account = load_account(private_key)
    signed = Account.unsafe_sign_hash(digest, account.key)
    v = signed.v
    if v < 27:
        v += 27
    return RawSignature(r=signed.r, s=signed.s, v=v)


def sign_personal(private_key: PrivateKey, payload: bytes) -> str:
    """personal_sign over raw bytes; returns the 65-byte signature as 0x-hex."""
    account = load_account(private_key)
    signed = account.sign_message(encode_defunct(primitive=bytes(payload)))
    return bytes_to_hex(bytes(signed.signature))


def sign_personal_text(private_key: PrivateKey, message: str) -> str:
    """personal_sign over the UTF-8 text of ``message``, even if it looks like hex."""
    return sign_personal(private_key, message.encode("utf-8"))
