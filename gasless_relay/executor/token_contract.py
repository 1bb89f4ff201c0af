"""
Token contract facade.

Write operations (transfer, approve, buy, sell, dispose) are encoded locally
and executed through :class:`GaslessExecutor`; each has a ``*_formatted``
variant taking a human amount. View functions (token, contract state, fees,
limits, roles and the membership NFT) go through the relay's ``/read``
endpoint and raise on failure; :meth:`TokenContract.all_contract_info`
gathers them with per-field fallbacks.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable

from ..helpers.batch_builder import (
    BatchCall,
    encode_approve,
    encode_buy_token,
    encode_dispose_token,
    encode_sell_token,
    encode_transfer,
    encode_transfer_from,
)
from ..helpers.codec import UINT256_MAX, checksum_address
from ..helpers.errors import EncodingError, GaslessError, RelayError, StateError
from ..helpers.signing import PrivateKey, address_from_key
from .gasless_executor import GaslessExecutor
from .results import ExecutionResult, MembershipInfo

logger = logging.getLogger(__name__)

__all__ = ["ROLE_NAMES", "TokenContract", "role_name"]

ROLE_NAMES: dict[int, str] = {
    0: "Admin",
    1: "Moderator",
    2: "Minter",
    3: "Extractor",
    4: "CFO",
    5: "Whitelist",
}

# Deployed contract spells it this way
GLOBAL_TX_LIMIT_FUNCTION = "TxLimitGLobal"


def role_name(role_id: int) -> str:
    return ROLE_NAMES.get(role_id, "Unknown")


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        except ValueError:
            pass
    raise RelayError(f"Unexpected {name} value from relay: {value!r}")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


def _as_address(value: Any, name: str) -> str:
    try:
        return checksum_address(str(value))
    except EncodingError as e:
        raise RelayError(f"Unexpected {name} value from relay: {value!r}") from e


class TokenContract:
    def __init__(self, executor: GaslessExecutor, token_address: str | None = None):
        self.executor = executor
        self._address = checksum_address(token_address) if token_address else None
        if self._address is None and executor.config.token_address:
            self._address = executor.config.token_address

    async def address(self) -> str:
        """Configured token address, else the one advertised by ``/contracts``."""
        if self._address is None:
            contracts = await self.executor.get_contracts()
            if contracts.token_address is None:
                raise StateError("token address is not configured and the relay did not provide one")
            self._address = contracts.token_address
        return self._address

    async def _execute(self, private_key: PrivateKey, data: bytes, wait_for_tx: bool) -> ExecutionResult:
        try:
            token = await self.address()
        except (RelayError, StateError) as e:
            return ExecutionResult.failure(f"Token address unavailable: {e}")
        return await self.executor.execute_batch_gasless(private_key, [BatchCall(to=token, data=data)], wait_for_tx)

    async def _to_raw(self, private_key: PrivateKey, human: str | int | float) -> int:
        await self.executor.get_token_decimals(private_key)
        return self.executor.to_raw_amount(human)

    # ---------- writes ----------

    async def transfer(self, private_key: PrivateKey, to: str, amount: int, wait_for_tx: bool = True) -> ExecutionResult:
        return await self._execute(private_key, encode_transfer(to, amount), wait_for_tx)

    async def transfer_formatted(self, private_key: PrivateKey, to: str, amount: str | float, wait_for_tx: bool = True) -> ExecutionResult:
        return await self.transfer(private_key, to, await self._to_raw(private_key, amount), wait_for_tx)

    async def transfer_from(
        self, private_key: PrivateKey, sender: str, to: str, amount: int, wait_for_tx: bool = True
    ) -> ExecutionResult:
        return await self._execute(private_key, encode_transfer_from(sender, to, amount), wait_for_tx)

    async def transfer_from_formatted(
        self, private_key: PrivateKey, sender: str, to: str, amount: str | float, wait_for_tx: bool = True
    ) -> ExecutionResult:
        return await self.transfer_from(private_key, sender, to, await self._to_raw(private_key, amount), wait_for_tx)

    async def approve(self, private_key: PrivateKey, spender: str, amount: int, wait_for_tx: bool = True) -> ExecutionResult:
        return await self._execute(private_key, encode_approve(spender, amount), wait_for_tx)

    async def approve_formatted(self, private_key: PrivateKey, spender: str, amount: str | float, wait_for_tx: bool = True) -> ExecutionResult:
        return await self.approve(private_key, spender, await self._to_raw(private_key, amount), wait_for_tx)

    async def approve_unlimited(self, private_key: PrivateKey, spender: str, wait_for_tx: bool = True) -> ExecutionResult:
        return await self.approve(private_key, spender, UINT256_MAX, wait_for_tx)

    async def buy_token(self, private_key: PrivateKey, to: str, amount: int, wait_for_tx: bool = True) -> ExecutionResult:
        return await self._execute(private_key, encode_buy_token(to, amount), wait_for_tx)

    async def buy_token_formatted(self, private_key: PrivateKey, to: str, amount: str | float, wait_for_tx: bool = True) -> ExecutionResult:
        return await self.buy_token(private_key, to, await self._to_raw(private_key, amount), wait_for_tx)

    async def sell_token(self, private_key: PrivateKey, to: str, amount: int, wait_for_tx: bool = True) -> ExecutionResult:
        return await self._execute(private_key, encode_sell_token(to, amount), wait_for_tx)

    async def sell_token_formatted(self, private_key: PrivateKey, to: str, amount: str | float, wait_for_tx: bool = True) -> ExecutionResult:
        return await self.sell_token(private_key, to, await self._to_raw(private_key, amount), wait_for_tx)

    async def dispose_token(self, private_key: PrivateKey, amount: int, wait_for_tx: bool = True) -> ExecutionResult:
        return await self._execute(private_key, encode_dispose_token(amount), wait_for_tx)

    async def dispose_token_formatted(self, private_key: PrivateKey, amount: str | float, wait_for_tx: bool = True) -> ExecutionResult:
        return await self.dispose_token(private_key, await self._to_raw(private_key, amount), wait_for_tx)

    # ---------- reads ----------

    async def _read(self, private_key: PrivateKey, function: str, params: list[Any] | None = None) -> Any:
        headers = await self.executor.get_auth_headers(private_key)
        return await self.executor.relay.read_contract(function, headers, params)

    async def _formatted(self, private_key: PrivateKey, raw: int) -> str:
        await self.executor.get_token_decimals(private_key)
        return self.executor.to_human_amount(raw)

    async def balance_of(self, private_key: PrivateKey, owner: str | None = None) -> int:
        owner = checksum_address(owner) if owner else address_from_key(private_key)
        return _as_int(await self._read(private_key, "balanceOf", [owner]), "balanceOf")

    async def balance_of_formatted(self, private_key: PrivateKey, owner: str | None = None) -> str:
        return await self._formatted(private_key, await self.balance_of(private_key, owner))

    async def allowance(self, private_key: PrivateKey, owner: str, spender: str) -> int:
        params = [checksum_address(owner), checksum_address(spender)]
        return _as_int(await self._read(private_key, "allowance", params), "allowance")

    async def allowance_formatted(self, private_key: PrivateKey, owner: str, spender: str) -> str:
        return await self._formatted(private_key, await self.allowance(private_key, owner, spender))

    async def name(self, private_key: PrivateKey) -> str:
        return str(await self._read(private_key, "name"))

    async def symbol(self, private_key: PrivateKey) -> str:
        return str(await self._read(private_key, "symbol"))

    async def decimals(self, private_key: PrivateKey) -> int:
        return await self.executor.get_token_decimals(private_key)

    async def total_supply(self, private_key: PrivateKey) -> int:
        return _as_int(await self._read(private_key, "totalSupply"), "totalSupply")

    async def public_balance(self, address: str, api_key: str) -> int:
        """Balance via the API-key endpoint; no wallet session needed."""
        return await self.executor.relay.get_balance(checksum_address(address), api_key)

    async def public_balance_formatted(self, address: str, api_key: str) -> str:
        return self.executor.to_human_amount(await self.public_balance(address, api_key))

    async def owner(self, private_key: PrivateKey) -> str:
        return _as_address(await self._read(private_key, "owner"), "owner")

    # ---------- contract state ----------

    async def is_paused(self, private_key: PrivateKey) -> bool:
        return _as_bool(await self._read(private_key, "Paused"))

    async def is_custody_enabled(self, private_key: PrivateKey) -> bool:
        return _as_bool(await self._read(private_key, "CustodyEnable"))

    async def has_fee(self, private_key: PrivateKey) -> bool:
        return _as_bool(await self._read(private_key, "HasFee"))

    async def is_limit_tx_enabled(self, private_key: PrivateKey) -> bool:
        return _as_bool(await self._read(private_key, "LimitTx"))

    async def min_hold_token(self, private_key: PrivateKey) -> int:
        return _as_int(await self._read(private_key, "MinHoldToken"), "MinHoldToken")

    async def min_hold_token_formatted(self, private_key: PrivateKey) -> str:
        return await self._formatted(private_key, await self.min_hold_token(private_key))

    # ---------- fees ----------

    async def percent_fee_bps(self, private_key: PrivateKey) -> int:
        """Percent fee in basis points (100 = 1%)."""
        return _as_int(await self._read(private_key, "percentFeeBps"), "percentFeeBps")

    async def percent_fee_percent(self, private_key: PrivateKey) -> float:
        return await self.percent_fee_bps(private_key) / 100

    async def fixed_fee(self, private_key: PrivateKey) -> int:
        return _as_int(await self._read(private_key, "fixedFee"), "fixedFee")

    async def fixed_fee_formatted(self, private_key: PrivateKey) -> str:
        return await self._formatted(private_key, await self.fixed_fee(private_key))

    # ---------- transaction limits ----------

    async def user_limit(self, private_key: PrivateKey, user: str | None = None) -> tuple[int, int]:
        """Per-user ``(min, max)`` transaction limit."""
        user = checksum_address(user) if user else address_from_key(private_key)
        data = await self._read(private_key, "getUserLimit", [user])
        if isinstance(data, list) and len(data) >= 2:
            low, high = data[0], data[1]
        elif isinstance(data, dict):
            low = data.get("0", data.get("min"))
            high = data.get("1", data.get("max"))
        else:
            raise RelayError(f"Unexpected getUserLimit value from relay: {data!r}")
        return _as_int(low, "getUserLimit min"), _as_int(high, "getUserLimit max")

    async def user_limit_min(self, private_key: PrivateKey, user: str | None = None) -> int:
        return (await self.user_limit(private_key, user))[0]

    async def user_limit_max(self, private_key: PrivateKey, user: str | None = None) -> int:
        return (await self.user_limit(private_key, user))[1]

    async def tx_limit_global_min(self, private_key: PrivateKey) -> int:
        return _as_int(await self._read(private_key, GLOBAL_TX_LIMIT_FUNCTION, [0]), "global tx limit min")

    async def tx_limit_global_max(self, private_key: PrivateKey) -> int:
        return _as_int(await self._read(private_key, GLOBAL_TX_LIMIT_FUNCTION, [1]), "global tx limit max")

    # ---------- roles ----------

    async def has_role(self, private_key: PrivateKey, role_id: int, account: str | None = None) -> bool:
        account = checksum_address(account) if account else address_from_key(private_key)
        return _as_bool(await self._read(private_key, "hasRole", [role_id, account]))

    async def user_roles(self, private_key: PrivateKey, account: str | None = None) -> dict[int, bool]:
        """Every known role for ``account``; a role that cannot be read counts as not held."""
        roles = {}
        for role_id in ROLE_NAMES:
            try:
                roles[role_id] = await self.has_role(private_key, role_id, account)
            except RelayError as e:
                logger.warning("Role %s unreadable: %s", role_name(role_id), e)
                roles[role_id] = False
        return roles

    # ---------- membership NFT ----------

    async def has_membership(self, private_key: PrivateKey, address: str | None = None) -> bool:
        address = checksum_address(address) if address else address_from_key(private_key)
        return _as_bool(await self._read(private_key, "hasMembership", [address]))

    async def membership_of(self, private_key: PrivateKey, address: str | None = None) -> int:
        """Membership token id of ``address``; 0 when it holds none."""
        address = checksum_address(address) if address else address_from_key(private_key)
        return _as_int(await self._read(private_key, "membershipOf", [address]), "membershipOf")

    async def owner_of_membership(self, private_key: PrivateKey, token_id: int) -> str:
        return _as_address(await self._read(private_key, "ownerOfMembership", [str(token_id)]), "ownerOfMembership")

    async def total_memberships(self, private_key: PrivateKey) -> int:
        return _as_int(await self._read(private_key, "totalMemberships"), "totalMemberships")

    async def nft_balance_of(self, private_key: PrivateKey, address: str | None = None) -> int:
        address = checksum_address(address) if address else address_from_key(private_key)
        return _as_int(await self._read(private_key, "nftBalanceOf", [address]), "nftBalanceOf")

    async def membership_info(self, private_key: PrivateKey, address: str | None = None) -> MembershipInfo:
        address = checksum_address(address) if address else address_from_key(private_key)
        data = await self._read(private_key, "getMembershipInfo", [address])
        if isinstance(data, list) and len(data) >= 4:
            fields = data[:4]
        elif isinstance(data, dict):
            fields = [
                data.get("isMember", data.get("0")),
                data.get("tokenId", data.get("1", 0)),
                data.get("mintedAt", data.get("2", 0)),
                data.get("tokenURI", data.get("3", "")),
            ]
        else:
            raise RelayError(f"Unexpected getMembershipInfo value from relay: {data!r}")

        is_member, token_id, minted_at, token_uri = fields
        return MembershipInfo(
            is_member=_as_bool(is_member),
            token_id=_as_int(token_id, "membership tokenId"),
            minted_at=datetime.fromtimestamp(_as_int(minted_at, "membership mintedAt"), tz=timezone.utc),
            token_uri="" if token_uri is None else str(token_uri),
        )

    async def membership_token_uri(self, private_key: PrivateKey, token_id: int) -> str:
        return str(await self._read(private_key, "membershipTokenURI", [str(token_id)]))

    async def nft_base_uri(self, private_key: PrivateKey) -> str:
        return str(await self._read(private_key, "nftBaseURI"))

    async def nft_name(self, private_key: PrivateKey) -> str:
        return str(await self._read(private_key, "nftName"))

    async def nft_symbol(self, private_key: PrivateKey) -> str:
        return str(await self._read(private_key, "nftSymbol"))

    # ---------- summary ----------

    async def _or_default(self, label: str, read: Awaitable[Any], default: Any) -> Any:
        try:
            return await read
        except GaslessError as e:
            logger.warning("Contract info %s unavailable: %s", label, e)
            return default

    async def all_contract_info(self, private_key: PrivateKey) -> dict[str, Any]:
        """
        Snapshot of token, contract state, fee, limit, role and membership reads.

        Each field falls back to an empty value when its read fails, so one
        reverted view never hides the rest.
        """
        info: dict[str, Any] = {
            "name": await self._or_default("name", self.name(private_key), ""),
            "symbol": await self._or_default("symbol", self.symbol(private_key), ""),
            "decimals": await self.decimals(private_key),
            "totalSupply": await self._or_default("totalSupply", self.total_supply(private_key), 0),
            "balance": await self._or_default("balance", self.balance_of(private_key), 0),
            "owner": await self._or_default("owner", self.owner(private_key), ""),
            "isPaused": await self._or_default("isPaused", self.is_paused(private_key), False),
            "custodyEnabled": await self._or_default("custodyEnabled", self.is_custody_enabled(private_key), False),
            "hasFee": await self._or_default("hasFee", self.has_fee(private_key), False),
            "limitTxEnabled": await self._or_default("limitTxEnabled", self.is_limit_tx_enabled(private_key), False),
            "minHoldToken": await self._or_default("minHoldToken", self.min_hold_token(private_key), 0),
            "percentFeeBps": await self._or_default("percentFeeBps", self.percent_fee_bps(private_key), 0),
            "fixedFee": await self._or_default("fixedFee", self.fixed_fee(private_key), 0),
            "txLimitGlobalMin": await self._or_default("txLimitGlobalMin", self.tx_limit_global_min(private_key), 0),
            "txLimitGlobalMax": await self._or_default("txLimitGlobalMax", self.tx_limit_global_max(private_key), 0),
        }
        info["percentFeePercent"] = info["percentFeeBps"] / 100

        nonces = await self._or_default("nonces", self.executor.get_delegated_nonces(private_key), None)
        info["delegatedNonces"] = nonces.delegation_nonce if nonces else 0
        info["authorizationNonce"] = nonces.nonce if nonces else 0

        info["roles"] = await self.user_roles(private_key)

        price = await self.executor.get_gold_price(private_key)
        info["goldPrice"] = price.price
        info["balanceUsdValue"] = price.usd_value(float(self.executor.to_human_amount(info["balance"])))

        membership = await self._or_default("membership", self.membership_info(private_key), MembershipInfo.empty())
        info["membership"] = membership.as_dict()
        info["totalMemberships"] = await self._or_default("totalMemberships", self.total_memberships(private_key), 0)
        info["nftName"] = await self._or_default("nftName", self.nft_name(private_key), "")
        info["nftSymbol"] = await self._or_default("nftSymbol", self.nft_symbol(private_key), "")
        info["nftBaseURI"] = await self._or_default("nftBaseURI", self.nft_base_uri(private_key), "")
        return info
