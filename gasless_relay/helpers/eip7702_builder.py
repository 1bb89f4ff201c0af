"""
EIP-7702 signing payloads
=========================

Two digests are produced here and they are signed differently:

* the delegation authorization, ``keccak(0x05 || rlp([chain_id, delegate, nonce]))``,
  signed raw (no message prefix);
* the batch execution digest, ``keccak(nonce || call_0 || call_1 ...)`` with each
  call packed as ``to || value || data``, signed as a personal message.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from ..config.settings import AUTHORIZATION_MAGIC
from .batch_builder import BatchCall
from .codec import address_to_bytes, checksum_address, keccak256, packed, rlp_encode_list
from .signing import PrivateKey, RawSignature, sign_personal, sign_raw

logger = logging.getLogger(__name__)

__all__ = [
    "AuthorizationData",
    "AuthorizationBuilder",
    "build_authorization_preimage",
    "encode_calls",
    "build_execution_digest",
    "sign_execution_digest",
]


@dataclass(frozen=True)
class AuthorizationData:
    delegate_address: str
    nonce: int
    chain_id: int
    signature: RawSignature

    def to_payload(self) -> dict[str, Any]:
        """Relay wire form; integers as decimal strings, r/s as 32-byte hex."""
        return {
            "address": self.delegate_address,
            "nonce": str(self.nonce),
            "chainId": str(self.chain_id),
            "signature": {
                "r": self.signature.r_hex,
                "s": self.signature.s_hex,
                "v": self.signature.v,
            },
        }


def build_authorization_preimage(chain_id: int, delegate_address: str, nonce: int) -> bytes:
    return AUTHORIZATION_MAGIC + rlp_encode_list(
        [chain_id, address_to_bytes(delegate_address), nonce]
    )


class AuthorizationBuilder:
    """Signs delegation authorizations for one delegate contract on one chain."""

    def __init__(self, delegate_address: str, chain_id: int):
        self.delegate_address = checksum_address(delegate_address)
        self.chain_id = chain_id

    def digest(self, nonce: int) -> bytes:
        return keccak256(build_authorization_preimage(self.chain_id, self.delegate_address, nonce))

    def build(self, private_key: PrivateKey, nonce: int) -> AuthorizationData:
        signature = sign_raw(private_key, self.digest(nonce))
        logger.debug(
            "Signed authorization for delegate %s (chain %s, nonce %s)",
            self.delegate_address, self.chain_id, nonce,
        )
        return AuthorizationData(
            delegate_address=self.delegate_address,
            nonce=nonce,
            chain_id=self.chain_id,
            signature=signature,
        )


def encode_calls(calls: Sequence[BatchCall]) -> bytes:
    """Packed ``to || value || data`` per call, concatenated in order."""
    return b"".join(
        packed(["address", "uint256", "bytes"], [call.to, call.value, call.data])
        for call in calls
    )


def build_execution_digest(nonce: int, calls: Sequence[BatchCall]) -> bytes:
    return keccak256(packed(["uint256", "bytes"], [nonce, encode_calls(calls)]))


def sign_execution_digest(private_key: PrivateKey, nonce: int, calls: Sequence[BatchCall]) -> str:
    return sign_personal(private_key, build_execution_digest(nonce, calls))
