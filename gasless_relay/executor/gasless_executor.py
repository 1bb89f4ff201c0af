"""
Gasless executor
================

Orchestrates relay-sponsored execution for an EIP-7702 delegated wallet:

  1. authenticate with the relay (cached signed challenge);
  2. fetch the delegation nonce;
  3. pack the calls, hash them with the nonce, personal-sign the digest;
  4. submit to the sponsor endpoint and interpret the response.

Private keys are passed per call and never stored on the instance.

Public operations return :class:`ExecutionResult`; relay, auth and state
failures become ``ExecutionResult.failure``. Malformed input (bad hex, wrong
address length, bad key) raises immediately.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Sequence

from web3 import Web3

from ..config.abis import ERC20_ABI
from ..config.logging_config import log_execution
from ..config.network import get_explorer_url
from ..config.settings import PRICE_CACHE_TTL, SESSION_TTL, ExecutorConfig
from ..helpers.abi_encoder import AbiEncoder, ContractCall
from ..helpers.amounts import AmountConverter
from ..helpers.auth_session import AuthSession
from ..helpers.batch_builder import BatchCall, BatchCallBuilder
from ..helpers.cache import Clock, TokenInfoCache, TTLCache
from ..helpers.codec import checksum_address
from ..helpers.eip7702_builder import AuthorizationBuilder, sign_execution_digest
from ..helpers.errors import AuthError, EncodingError, RelayError, StateError
from ..helpers.gold_price import GoldPrice
from ..helpers.relay_client import (
    ContractAddresses,
    DelegationStatus,
    NonceInfo,
    RelayClient,
    TransactionResponse,
)
from ..helpers.signing import PrivateKey, address_from_key, sign_personal_text
from ..helpers.web3_setup import get_web3_instance, read_delegation_designator
from .results import ExecutionResult, PriceResult

logger = logging.getLogger(__name__)

__all__ = ["GaslessExecutor"]

_HANDLED = (AuthError, RelayError, StateError)


def _is_already_registered(text: str | None) -> bool:
    return bool(text) and "already" in text.lower()


class GaslessExecutor:
    """Relay-backed executor owning the session, decimals and price caches."""

    def __init__(
        self,
        config: ExecutorConfig,
        relay: RelayClient | None = None,
        *,
        clock: Clock = time.time,
        w3: Web3 | None = None,
    ):
        self.config = config
        self.relay = relay or RelayClient(
            config.relay_url,
            timeout=config.request_timeout,
            public_api_key=config.public_api_key,
        )
        self.clock = clock
        self.session = AuthSession(self.relay, ttl=SESSION_TTL, clock=clock)
        self.authorization_builder = AuthorizationBuilder(config.delegate_address, config.chain_id)
        self.abi_encoder = AbiEncoder(self.relay)
        if config.token_address:
            self.abi_encoder.register_abi(config.token_address, ERC20_ABI)
        self.token_info = TokenInfoCache()
        self.price_cache: TTLCache[GoldPrice] = TTLCache(PRICE_CACHE_TTL, clock=clock, name="gold price")
        self._w3 = w3

        logger.info(
            "Gasless executor ready: relay=%s chain=%s delegate=%s api_key=%s",
            config.relay_url,
            config.chain_id,
            config.delegate_address,
            "present" if config.public_api_key else "absent",
        )

    async def __aenter__(self) -> "GaslessExecutor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.relay.close()

    async def _guard(self, operation: str, action: Callable[[], Awaitable[ExecutionResult]]) -> ExecutionResult:
        try:
            return await action()
        except _HANDLED as e:
            logger.error("%s failed: %s", operation, e)
            return ExecutionResult.failure(f"{operation} failed: {e}")

    def explorer_tx_url(self, tx_hash: str) -> str | None:
        """Block explorer link for a transaction on the configured chain."""
        try:
            return f"{get_explorer_url(self.config.chain_id)}/tx/{tx_hash}"
        except ValueError:
            return None

    def _log_transaction(self, result: ExecutionResult) -> None:
        if result.success and result.tx_hash:
            url = self.explorer_tx_url(result.tx_hash)
            if url:
                logger.info("View transaction: %s", url)

    @staticmethod
    def _transaction_result(resp: TransactionResponse, default_error: str) -> ExecutionResult:
        if resp.success:
            return ExecutionResult.ok(tx_hash=resp.tx_hash, transaction_id=resp.transaction_id, data=resp.raw)
        return ExecutionResult.failure(resp.message or default_error)

    # ------------------------------------------------------------------ #
    # Authentication                                                      #
    # ------------------------------------------------------------------ #

    async def get_auth_headers(self, private_key: PrivateKey) -> dict[str, str]:
        return await self.session.obtain_headers(private_key)

    def clear_auth_cache(self) -> None:
        self.session.invalidate()

    async def register_wallet(self, private_key: PrivateKey) -> ExecutionResult:
        """Register the signer with the relay; "already registered" counts as success."""
        address = address_from_key(private_key)

        async def run() -> ExecutionResult:
            try:
                message = await self.relay.get_random_message(address)
            except RelayError as e:
                raise AuthError(f"Failed to get auth message: {e}") from e
            signature = sign_personal_text(private_key, message)
            try:
                resp = await self.relay.register_wallet(message, signature)
            except RelayError as e:
                if _is_already_registered(e.message):
                    logger.info("Wallet %s already registered", address)
                    return ExecutionResult.ok(data={"address": address, "message": e.message})
                raise
            finally:
                self.session.invalidate()

            if not resp.success:
                if _is_already_registered(resp.message):
                    logger.info("Wallet %s already registered", address)
                    return ExecutionResult.ok(data={"address": address, "message": resp.message})
                return ExecutionResult.failure(resp.message or "Registration failed")
            if resp.address and resp.address.lower() != address.lower():
                raise AuthError(f"relay registered {resp.address}, expected {address}")

            logger.info("Registered wallet %s", address)
            return ExecutionResult.ok(data={"address": address, "message": resp.message})

        return await self._guard("Registration", run)

    # ------------------------------------------------------------------ #
    # Admin                                                               #
    # ------------------------------------------------------------------ #

    async def admin_whitelist(
        self,
        private_key: PrivateKey,
        api_key: str,
        address: str | None = None,
    ) -> ExecutionResult:
        target = checksum_address(address) if address else address_from_key(private_key)

        async def run() -> ExecutionResult:
            headers = await self.session.obtain_headers(private_key)
            resp = await self.relay.admin_whitelist(target, {**headers, "x-api-key": api_key})
            return self._transaction_result(resp, "Failed to whitelist wallet")

        return await self._guard("Admin whitelist", run)

    async def register_and_whitelist(self, private_key: PrivateKey, api_key: str) -> ExecutionResult:
        registration = await self.register_wallet(private_key)
        proceed = (
            registration.success
            or _is_already_registered(registration.error)
            or _is_already_registered(str(registration.data.get("message") or ""))
        )
        if not proceed:
            logger.warning("Registration failed, skipping whitelist: %s", registration.error)
            return registration
        return await self.admin_whitelist(private_key, api_key)

    async def admin_mint(
        self,
        api_key: str,
        to_address: str,
        amount: str | int,
        wait_for_tx: bool = False,
    ) -> ExecutionResult:
        target = checksum_address(to_address)

        async def run() -> ExecutionResult:
            resp = await self.relay.admin_mint(target, str(amount), {"x-api-key": api_key}, wait_for_tx)
            return self._transaction_result(resp, "Mint failed")

        return await self._guard("Admin mint", run)

    # ------------------------------------------------------------------ #
    # Delegation                                                          #
    # ------------------------------------------------------------------ #

    async def get_delegated_nonces(self, private_key: PrivateKey) -> NonceInfo:
        headers = await self.session.obtain_headers(private_key)
        return await self.relay.get_nonces(headers)

    async def get_wallet_nonce(self, private_key: PrivateKey) -> ExecutionResult:
        async def run() -> ExecutionResult:
            nonces = await self.get_delegated_nonces(private_key)
            return ExecutionResult.ok(data={
                "nonce": nonces.nonce,
                "delegationNonce": nonces.delegation_nonce,
                "goldNonce": nonces.gold_nonce,
            })

        return await self._guard("Get nonce", run)

    async def get_wallet_status(self, private_key: PrivateKey) -> ExecutionResult:
        async def run() -> ExecutionResult:
            headers = await self.session.obtain_headers(private_key)
            status = await self.relay.get_status(headers)
            return ExecutionResult.ok(data={
                "delegated": status.is_delegated,
                "delegateAddress": status.delegate_address,
            })

        return await self._guard("Get status", run)

    async def ensure_delegated(self, private_key: PrivateKey) -> DelegationStatus:
        """Relay-reported delegation status; StateError when not delegated."""
        headers = await self.session.obtain_headers(private_key)
        status = await self.relay.get_status(headers)
        if not status.is_delegated:
            raise StateError("wallet is not delegated, call authorize() first")
        return status

    def _web3(self) -> Web3:
        if self._w3 is None:
            self._w3 = get_web3_instance(self.config.rpc_url)
        return self._w3

    async def get_delegation_status(self, private_key: PrivateKey) -> DelegationStatus:
        """On-chain check of the account's code for an EIP-7702 designator."""
        address = address_from_key(private_key)
        try:
            w3 = self._web3()
        except RuntimeError as e:
            logger.warning("Delegation check skipped: %s", e)
            return DelegationStatus(is_delegated=False)
        delegate = await asyncio.to_thread(read_delegation_designator, w3, address)
        return DelegationStatus(is_delegated=delegate is not None, delegate_address=delegate)

    async def authorize(self, private_key: PrivateKey, wait_for_tx: bool = False) -> ExecutionResult:
        """Sign and submit the delegation authorization for the configured delegate."""
        address = address_from_key(private_key)

        async def run() -> ExecutionResult:
            headers = await self.session.obtain_headers(private_key)
            try:
                nonce = (await self.relay.get_nonces(headers)).delegation_nonce
            except RelayError as e:
                logger.warning("Could not fetch nonce for %s, using 0: %s", address, e)
                nonce = 0

            authorization = self.authorization_builder.build(private_key, nonce)
            resp = await self.relay.authorize(authorization.to_payload(), headers, address, wait_for_tx)
            result = self._transaction_result(resp, "Authorization failed")
            log_execution(logger, "AUTHORIZE", 0, result.success, result.tx_hash, result.error)
            self._log_transaction(result)
            return result

        return await self._guard("Authorization", run)

    # ------------------------------------------------------------------ #
    # Execution                                                           #
    # ------------------------------------------------------------------ #

    async def execute_batch_gasless(
        self,
        private_key: PrivateKey,
        calls: Sequence[BatchCall] | BatchCallBuilder,
        wait_for_tx: bool = True,
    ) -> ExecutionResult:
        """Sign ``calls`` against the current delegation nonce and submit them."""
        batch = calls.build() if isinstance(calls, BatchCallBuilder) else list(calls)
        if not batch:
            raise EncodingError("batch must contain at least one call")
        payload = [call.to_payload() for call in batch]
        address_from_key(private_key)

        async def run() -> ExecutionResult:
            headers = await self.session.obtain_headers(private_key)
            nonces = await self.relay.get_nonces(headers)
            signature = sign_execution_digest(private_key, nonces.delegation_nonce, batch)
            logger.debug("Submitting %d call(s) at delegation nonce %d", len(batch), nonces.delegation_nonce)

            resp = await self.relay.sponsor(payload, signature, wait_for_tx, headers)
            result = self._transaction_result(resp, "Gasless execution failed")
            log_execution(logger, "BATCH", len(batch), result.success, result.tx_hash, result.error)
            self._log_transaction(result)
            return result

        return await self._guard("Gasless execution", run)

    async def execute_gasless(
        self,
        private_key: PrivateKey,
        to: str,
        data: str | bytes,
        value: int = 0,
        wait_for_tx: bool = True,
    ) -> ExecutionResult:
        return await self.execute_batch_gasless(private_key, [BatchCall(to=to, data=data, value=value)], wait_for_tx)

    async def execute_contract_calls(
        self,
        private_key: PrivateKey,
        calls: Sequence[ContractCall],
        wait_for_tx: bool = True,
    ) -> ExecutionResult:
        """Encode calls from relay-served ABIs and execute them; the wallet must be delegated."""
        if not calls:
            raise EncodingError("batch must contain at least one call")

        async def run() -> ExecutionResult:
            await self.ensure_delegated(private_key)
            batch = [await self.abi_encoder.encode(call) for call in calls]
            return await self.execute_batch_gasless(private_key, batch, wait_for_tx)

        return await self._guard("Contract execution", run)

    # ------------------------------------------------------------------ #
    # Token info                                                          #
    # ------------------------------------------------------------------ #

    def initialize_token_info(self, decimals: int) -> None:
        self.token_info.update(decimals)

    async def get_token_decimals(self, private_key: PrivateKey, force_refresh: bool = False) -> int:
        """
        Token decimals read through the relay, cached without expiry.

        When the read fails the default (6) is returned and the cache stays
        uninitialized, so the next call retries.
        """
        async def fetch() -> int:
            headers = await self.session.obtain_headers(private_key)
            decimals = int(await self.relay.read_contract("decimals", headers))
            logger.info("Token decimals: %d", decimals)
            return decimals

        try:
            return await self.token_info.get_or_refresh(fetch, force=force_refresh)
        except (AuthError, RelayError, ValueError, TypeError) as e:
            logger.warning(
                "Token decimals unavailable, assuming %d: %s",
                self.token_info.default_decimals, e,
            )
            return self.token_info.default_decimals

    def get_amount_converter(self) -> AmountConverter:
        return AmountConverter(self.token_info.decimals)

    def to_raw_amount(self, human: str | int | float) -> int:
        return self.get_amount_converter().to_raw(human)

    def to_human_amount(self, raw: int) -> str:
        return self.get_amount_converter().to_human(raw)

    # ------------------------------------------------------------------ #
    # Gold price                                                          #
    # ------------------------------------------------------------------ #

    async def get_gold_price(self, private_key: PrivateKey, force_refresh: bool = False) -> PriceResult:
        async def fetch() -> GoldPrice:
            headers = await self.session.obtain_headers(private_key)
            value = await self.relay.get_gold_price(headers)
            return GoldPrice(price_per_mg=value, fetched_at=self.clock())

        try:
            price = await self.price_cache.get_or_refresh(fetch, force=force_refresh)
        except _HANDLED as e:
            logger.error("Gold price fetch failed: %s", e)
            return PriceResult(success=False, error=str(e))
        return PriceResult(success=True, price=price)

    def clear_price_cache(self) -> None:
        self.price_cache.clear()

    async def get_balance_with_usd_value(
        self,
        private_key: PrivateKey,
        address: str,
        api_key: str,
    ) -> dict[str, Any]:
        """Public balance plus its USD value; USD fields are None when no price is available."""
        try:
            raw = await self.relay.get_balance(checksum_address(address), api_key)
        except RelayError as e:
            return {"success": False, "error": str(e)}

        balance = self.to_human_amount(raw)
        price = await self.get_gold_price(private_key)
        return {
            "success": True,
            "balance": balance,
            "usdValue": price.usd_value(float(balance)),
            "formattedUsdValue": price.formatted_usd_value(float(balance)),
            "goldPrice": price.price,
        }

    # ------------------------------------------------------------------ #
    # Discovery                                                           #
    # ------------------------------------------------------------------ #

    async def get_contracts(self) -> ContractAddresses:
        return await self.relay.get_contracts()
