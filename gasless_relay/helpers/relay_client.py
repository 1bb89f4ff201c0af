"""
Async HTTP client for the gasless relay backend.

Every endpoint returns a typed value; response shapes are validated here, once,
and anything unrecognized raises :class:`RelayError`. Retries are left to the
caller.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from ..config.network import RELAY_TIMEOUT
from .codec import checksum_address
from .errors import EncodingError, RelayError
from .gold_price import extract_gold_price

logger = logging.getLogger(__name__)

__all__ = [
    "NonceInfo",
    "DelegationStatus",
    "RegistrationResponse",
    "TransactionResponse",
    "ContractAddresses",
    "RelayClient",
]


@dataclass(frozen=True)
class NonceInfo:
    nonce: int
    delegation_nonce: int
    gold_nonce: int = 0


@dataclass(frozen=True)
class DelegationStatus:
    is_delegated: bool
    delegate_address: str | None = None


@dataclass(frozen=True)
class RegistrationResponse:
    success: bool
    address: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransactionResponse:
    """Outcome of a state-changing relay call (sponsor, authorize, admin)."""
    success: bool
    tx_hash: str | None = None
    transaction_id: str | None = None
    message: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "TransactionResponse":
        tx = data.get("transaction")
        tx = tx if isinstance(tx, dict) else None
        success = data.get("success") is True or tx is not None
        tx_hash = (tx.get("hash") or tx.get("txHash")) if tx else None
        tx_id = tx.get("id") if tx else None
        return cls(
            success=success,
            tx_hash=tx_hash,
            transaction_id=str(tx_id) if tx_id is not None else None,
            message=_message_of(data),
            raw=data,
        )


@dataclass(frozen=True)
class ContractAddresses:
    delegate_address: str | None
    token_address: str | None
    raw: dict[str, Any] = field(default_factory=dict)


def _message_of(data: Any) -> str | None:
    if isinstance(data, dict):
        msg = data.get("message") or data.get("error")
        if msg is not None:
            return str(msg)
    return None


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise RelayError(f"Invalid {name} in relay response: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 16) if text.startswith(("0x", "0X")) else int(text)
        except ValueError:
            pass
    raise RelayError(f"Invalid {name} in relay response: {value!r}")


def _optional_address(value: Any) -> str | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return checksum_address(value)
    except EncodingError:
        logger.warning("Relay returned malformed address %r", value)
        return None


class RelayClient:
    """
    Client for the relay's JSON-over-HTTPS endpoints.

    Use as an async context manager, or call :meth:`close` when done.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = RELAY_TIMEOUT,
        public_api_key: str | None = None,
        session: aiohttp.ClientSession | None = None,
        sponsor_path: str = "/sponsor",
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.public_api_key = public_api_key
        self.sponsor_path = sponsor_path
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    # ---------- transport ----------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        request_headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.public_api_key:
            request_headers["x-api-key"] = self.public_api_key
        if headers:
            request_headers.update(headers)

        logger.debug("%s %s", method, url)
        try:
            async with self._get_session().request(
                method, url, json=body, headers=request_headers
            ) as resp:
                status = resp.status
                text = (await resp.read()).decode("utf-8", errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RelayError(f"Failed to {operation}: {e!r}") from e

        logger.debug("%s %s -> %s", method, url, status)

        data: Any = {}
        if text:
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                if 200 <= status < 300:
                    raise RelayError(f"Invalid JSON from {path}: {text[:200]}", status)
                data = {"message": text}

        if not 200 <= status < 300:
            message = _message_of(data) or text or "no response body"
            raise RelayError(f"Failed to {operation}: {message}", status, data)
        return data

    @staticmethod
    def _expect_object(data: Any, path: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise RelayError(f"Invalid response from {path}: {data!r}", payload=data)
        return data

    @staticmethod
    def _expect_success(data: dict[str, Any], operation: str) -> None:
        if data.get("success") is False:
            raise RelayError(f"Failed to {operation}: {_message_of(data) or 'unknown error'}", payload=data)

    # ---------- authentication ----------

    async def get_random_message(self, address: str) -> str:
        data = self._expect_object(
            await self._request("POST", "/random", operation="get random message", body={"address": address}),
            "/random",
        )
        msg = data.get("signMessage")
        if not isinstance(msg, str) or not msg:
            raise RelayError(f"Invalid response from /random: {data!r}", payload=data)
        return msg

    async def register_wallet(
        self,
        message: str,
        signature: str,
        headers: dict[str, str] | None = None,
    ) -> RegistrationResponse:
        data = self._expect_object(
            await self._request(
                "POST",
                "/register",
                operation="register wallet",
                headers=headers,
                body={"message": message, "signature": signature},
            ),
            "/register",
        )
        address = data.get("address")
        address = address if isinstance(address, str) else None
        success = data.get("success") is True or (address is not None and data.get("success") is not False)
        return RegistrationResponse(success=success, address=address, message=_message_of(data), raw=data)

    # ---------- delegation ----------

    async def get_nonces(self, headers: dict[str, str]) -> NonceInfo:
        data = self._expect_object(
            await self._request("GET", "/nonce", operation="get nonces", headers=headers),
            "/nonce",
        )
        self._expect_success(data, "get nonces")

        raw_nonce = data.get("nonce")
        raw_delegation = data.get("delegationNonce")
        if raw_nonce is None and raw_delegation is None:
            raise RelayError(f"Invalid nonce response: {data!r}", payload=data)

        nonce = _parse_int(raw_nonce, "nonce") if raw_nonce is not None else None
        delegation = _parse_int(raw_delegation, "delegationNonce") if raw_delegation is not None else None
        gold = data.get("goldNonce")
        return NonceInfo(
            nonce=nonce if nonce is not None else delegation,
            delegation_nonce=delegation if delegation is not None else nonce,
            gold_nonce=_parse_int(gold, "goldNonce") if gold is not None else 0,
        )

    async def get_status(self, headers: dict[str, str]) -> DelegationStatus:
        data = self._expect_object(
            await self._request("GET", "/status", operation="get status", headers=headers),
            "/status",
        )
        self._expect_success(data, "get status")
        delegated = data.get("delegated")
        if not isinstance(delegated, bool):
            raise RelayError(f"Invalid status response: {data!r}", payload=data)
        return DelegationStatus(
            is_delegated=delegated,
            delegate_address=_optional_address(data.get("delegateAddress")),
        )

    async def authorize(
        self,
        authorization: dict[str, Any],
        headers: dict[str, str],
        wallet_address: str,
        wait_for_tx: bool = False,
    ) -> TransactionResponse:
        data = self._expect_object(
            await self._request(
                "POST",
                "/authorize",
                operation="authorize delegation",
                headers=headers,
                body={"authorization": authorization, "address": wallet_address, "waitForTx": wait_for_tx},
            ),
            "/authorize",
        )
        return TransactionResponse.from_payload(data)

    async def sponsor(
        self,
        calls: list[list[str]],
        signature: str,
        wait_for_tx: bool,
        headers: dict[str, str],
    ) -> TransactionResponse:
        """Submit signed calls; ``calls`` is sent JSON-stringified."""
        data = self._expect_object(
            await self._request(
                "POST",
                self.sponsor_path,
                operation="sponsor gasless transaction",
                headers=headers,
                body={"calls": json.dumps(calls), "signature": signature, "waitForTx": wait_for_tx},
            ),
            self.sponsor_path,
        )
        return TransactionResponse.from_payload(data)

    # ---------- contracts ----------

    async def get_contract_abi(self, contract_address: str) -> list[dict[str, Any]]:
        data = self._expect_object(
            await self._request("GET", f"/abi/{contract_address}", operation="get contract ABI"),
            "/abi",
        )
        if "abi" not in data:
            raise RelayError(f"Invalid ABI response: {data!r}", payload=data)
        abi = data["abi"]
        if isinstance(abi, str):
            try:
                abi = json.loads(abi)
            except json.JSONDecodeError as e:
                raise RelayError(f"ABI for {contract_address} is not valid JSON") from e
        if isinstance(abi, dict) and "abi" in abi:
            abi = abi["abi"]
        if not isinstance(abi, list):
            raise RelayError(f"Invalid ABI response: {data!r}", payload=data)
        return abi

    async def get_contracts(self) -> ContractAddresses:
        data = self._expect_object(
            await self._request("GET", "/contracts", operation="get contracts"),
            "/contracts",
        )
        self._expect_success(data, "get contracts")
        return ContractAddresses(
            delegate_address=_optional_address(data.get("delegateAddress") or data.get("delegate")),
            token_address=_optional_address(data.get("tokenAddress") or data.get("token")),
            raw=data,
        )

    async def read_contract(
        self,
        function: str,
        headers: dict[str, str],
        params: list[Any] | None = None,
    ) -> Any:
        """Token view call through the relay; returns the decoded ``result``."""
        data = self._expect_object(
            await self._request(
                "POST",
                "/read",
                operation=f"read {function}",
                headers=headers,
                body={"function": function, "params": params or []},
            ),
            "/read",
        )
        if data.get("success") is not True or "result" not in data:
            raise RelayError(
                f"Token read {function} failed: {_message_of(data) or 'no result'}", payload=data
            )
        return data["result"]

    async def get_balance(self, address: str, api_key: str) -> int:
        data = self._expect_object(
            await self._request(
                "GET", f"/balance/{address}", operation="get balance", headers={"x-api-key": api_key}
            ),
            "/balance",
        )
        if data.get("balance") is None:
            raise RelayError(f"Invalid balance response: {data!r}", payload=data)
        return _parse_int(data["balance"], "balance")

    # ---------- price feed ----------

    async def get_gold_price(self, headers: dict[str, str]) -> float:
        data = await self._request("GET", "/gold/price", operation="fetch gold price", headers=headers)
        if isinstance(data, dict):
            self._expect_success(data, "fetch gold price")
        return extract_gold_price(data)

    # ---------- admin ----------

    async def admin_mint(
        self,
        address: str,
        amount: str,
        headers: dict[str, str],
        wait_for_tx: bool = False,
    ) -> TransactionResponse:
        data = self._expect_object(
            await self._request(
                "POST",
                "/admin/mint",
                operation="mint",
                headers=headers,
                body={"address": address, "amount": amount, "waitForTx": wait_for_tx},
            ),
            "/admin/mint",
        )
        return TransactionResponse.from_payload(data)

    async def admin_whitelist(self, address: str, headers: dict[str, str]) -> TransactionResponse:
        data = self._expect_object(
            await self._request(
                "POST",
                "/admin/whitelist",
                operation="whitelist wallet",
                headers=headers,
                body={"address": address},
            ),
            "/admin/whitelist",
        )
        return TransactionResponse.from_payload(data)
