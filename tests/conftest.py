from __future__ import annotations

from typing import Any

import pytest
from eth_utils import to_checksum_address

from gasless_relay.config.settings import ExecutorConfig
from gasless_relay.helpers.errors import RelayError
from gasless_relay.helpers.relay_client import (
    ContractAddresses,
    DelegationStatus,
    NonceInfo,
    RegistrationResponse,
    TransactionResponse,
)

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = to_checksum_address("0x2c7536e3605d9c16a7a3d7b1898e529396a65c23")

OTHER_KEY = "0x" + "11" * 32

DELEGATE = to_checksum_address("0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359")
TOKEN = to_checksum_address("0xdbf03b407c01e7cd3cbea99509d93f8dddc8c6fb")
RECIPIENT = to_checksum_address("0xd1220a0cf47c7b9be7a2e6ba89f429762e7b9adb")


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRelay:
    """In-memory stand-in for RelayClient; records every call."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.challenge_counter = 0
        self.nonces = NonceInfo(nonce=3, delegation_nonce=7, gold_nonce=1)
        self.delegated = True
        self.sponsor_response: dict[str, Any] = {
            "success": True,
            "transaction": {"hash": "0xabc", "id": "tx-1"},
        }
        self.authorize_response: dict[str, Any] = {"success": True, "transaction": {"hash": "0xauth"}}
        self.registered_address: str | None = None
        self.register_message: str | None = None
        self.register_success: bool | None = None
        self.decimals: Any = 6
        self.gold_price = 0.105
        self.abis: dict[str, list[dict[str, Any]]] = {}
        self.fail: dict[str, RelayError] = {}
        self.contracts = ContractAddresses(delegate_address=DELEGATE, token_address=TOKEN)
        self.read_results: dict[str, Any] = {}
        self.balance = 1_500_000

    def _record(self, name: str, payload: Any = None) -> None:
        self.calls.append((name, payload))
        if name in self.fail:
            raise self.fail[name]

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def last(self, name: str) -> Any:
        for call, payload in reversed(self.calls):
            if call == name:
                return payload
        raise AssertionError(f"{name} was never called")

    async def close(self) -> None:
        pass

    async def get_random_message(self, address: str) -> str:
        self._record("random", address)
        self.challenge_counter += 1
        return f"Sign this message: {self.challenge_counter}"

    async def register_wallet(self, message, signature, headers=None) -> RegistrationResponse:
        self._record("register", {"message": message, "signature": signature})
        success = self.register_success if self.register_success is not None else True
        return RegistrationResponse(
            success=success,
            address=self.registered_address,
            message=self.register_message,
        )

    async def get_nonces(self, headers) -> NonceInfo:
        self._record("nonce", headers)
        return self.nonces

    async def get_status(self, headers) -> DelegationStatus:
        self._record("status", headers)
        return DelegationStatus(is_delegated=self.delegated, delegate_address=DELEGATE if self.delegated else None)

    async def authorize(self, authorization, headers, wallet_address, wait_for_tx=False) -> TransactionResponse:
        self._record("authorize", {"authorization": authorization, "address": wallet_address, "waitForTx": wait_for_tx})
        return TransactionResponse.from_payload(self.authorize_response)

    async def sponsor(self, calls, signature, wait_for_tx, headers) -> TransactionResponse:
        self._record("sponsor", {"calls": calls, "signature": signature, "waitForTx": wait_for_tx, "headers": headers})
        return TransactionResponse.from_payload(self.sponsor_response)

    async def get_contract_abi(self, contract_address):
        self._record("abi", contract_address)
        return self.abis[contract_address]

    async def get_contracts(self) -> ContractAddresses:
        self._record("contracts")
        return self.contracts

    async def read_contract(self, function, headers, params=None):
        self._record("read", {"function": function, "params": params or []})
        if function == "decimals":
            return self.decimals
        if function not in self.read_results:
            raise RelayError(f"Token read {function} failed: execution reverted")
        result = self.read_results[function]
        return result(params or []) if callable(result) else result

    async def get_balance(self, address, api_key) -> int:
        self._record("balance", {"address": address, "api_key": api_key})
        return self.balance

    async def get_gold_price(self, headers) -> float:
        self._record("gold_price", headers)
        return self.gold_price

    async def admin_mint(self, address, amount, headers, wait_for_tx=False) -> TransactionResponse:
        self._record("mint", {"address": address, "amount": amount, "headers": headers})
        return TransactionResponse.from_payload({"success": True, "message": "minted"})

    async def admin_whitelist(self, address, headers) -> TransactionResponse:
        self._record("whitelist", {"address": address, "headers": headers})
        return TransactionResponse.from_payload({"success": True, "message": "whitelisted"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
def config() -> ExecutorConfig:
    return ExecutorConfig(
        relay_url="https://relay.test/",
        delegate_address=DELEGATE,
        token_address=TOKEN,
        chain_id=80002,
    )
