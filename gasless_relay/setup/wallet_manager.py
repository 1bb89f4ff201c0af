#!/usr/bin/env python3
"""
Wallet creation and restore.

Keys are derived from a BIP-39 mnemonic on ``m/44'/60'/0'/0/0`` and the
address is registered with the relay. Nothing is persisted; callers own the
mnemonic and key.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from ..helpers.errors import AuthError, RelayError, SigningError
from ..helpers.relay_client import RelayClient
from ..helpers.signing import sign_personal_text

logger = logging.getLogger(__name__)

DEFAULT_DERIVATION_PATH = "m/44'/60'/0'/0/0"


@dataclass(frozen=True)
class Wallet:
    address: str
    private_key: str
    mnemonic: str
    derivation_path: str = DEFAULT_DERIVATION_PATH

    def __repr__(self) -> str:
        return f"Wallet(address={self.address!r}, derivation_path={self.derivation_path!r})"


def derive_wallet(mnemonic: str, path: str = DEFAULT_DERIVATION_PATH) -> Wallet:
    """Derive key and address for ``path``; SigningError on an invalid mnemonic."""
    Account.enable_unaudited_hdwallet_features()
    phrase = " ".join(mnemonic.split())
    try:
        acct: LocalAccount = Account.from_mnemonic(phrase, account_path=path)
    except Exception as e:
        raise SigningError(f"Invalid mnemonic: {e}") from e
    return Wallet(
        address=to_checksum_address(acct.address),
        private_key="0x" + bytes(acct.key).hex(),
        mnemonic=phrase,
        derivation_path=path,
    )


class WalletManager:
    def __init__(self, relay: RelayClient, derivation_path: str = DEFAULT_DERIVATION_PATH):
        self.relay = relay
        self.derivation_path = derivation_path

    async def _register(self, wallet: Wallet) -> None:
        challenge = await self.relay.get_random_message(wallet.address)
        signature = sign_personal_text(wallet.private_key, challenge)
        resp = await self.relay.register_wallet(challenge, signature)
        if not resp.address:
            raise RelayError(f"Registration returned no address: {resp.message or resp.raw!r}", payload=resp.raw)
        if resp.address.lower() != wallet.address.lower():
            raise AuthError(f"Backend address mismatch: {resp.address} != {wallet.address}")
        logger.info("Registered wallet %s", wallet.address)

    async def create_wallet(self, num_words: int = 12) -> Wallet:
        """Generate a fresh mnemonic, derive the wallet and register it."""
        Account.enable_unaudited_hdwallet_features()
        _, mnemonic = Account.create_with_mnemonic(num_words=num_words, account_path=self.derivation_path)
        wallet = derive_wallet(mnemonic, self.derivation_path)
        await self._register(wallet)
        return wallet

    async def restore_wallet(self, mnemonic: str) -> Wallet:
        """Derive the wallet from a user-supplied mnemonic and register it."""
        wallet = derive_wallet(mnemonic, self.derivation_path)
        await self._register(wallet)
        return wallet
