"""Result values returned across the executor's public boundary."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..helpers.amounts import format_usd
from ..helpers.gold_price import GoldPrice


@dataclass(frozen=True)
class ExecutionResult:
    """Either a success (with optional tx hash / id and payload) or a failure with an error."""
    success: bool
    tx_hash: str | None = None
    transaction_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def __post_init__(self):
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("failed result requires an error message")

    @classmethod
    def ok(
        cls,
        tx_hash: str | None = None,
        transaction_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> "ExecutionResult":
        return cls(success=True, tx_hash=tx_hash, transaction_id=transaction_id, data=data or {})

    @classmethod
    def failure(cls, error: str) -> "ExecutionResult":
        return cls(success=False, error=error or "unknown error")

    def as_dict(self) -> dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "txHash": self.tx_hash,
                "transactionId": self.transaction_id,
                "data": self.data,
            }
        return {"success": False, "error": self.error}


@dataclass(frozen=True)
class PriceResult:
    success: bool
    price: GoldPrice | None = None
    error: str | None = None

    @property
    def price_per_mg(self) -> float | None:
        return self.price.price_per_mg if self.price else None

    def usd_value(self, human_amount: float) -> float | None:
        """USD value of ``human_amount`` tokens (1 token = 1 mg)."""
        if self.price is None:
            return None
        return human_amount * self.price.price_per_mg

    def formatted_usd_value(self, human_amount: float) -> str | None:
        value = self.usd_value(human_amount)
        return format_usd(value) if value is not None else None


EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True)
class MembershipInfo:
    """Soulbound membership NFT held by an address; ``minted_at`` is UTC."""
    is_member: bool = False
    token_id: int = 0
    minted_at: datetime = EPOCH
    token_uri: str = ""

    @classmethod
    def empty(cls) -> "MembershipInfo":
        return cls()

    @property
    def is_valid(self) -> bool:
        return self.is_member and self.token_id > 0

    @property
    def formatted_minted_at(self) -> str:
        return self.minted_at.strftime("%Y-%m-%d") if self.is_member else ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "isMember": self.is_member,
            "tokenId": str(self.token_id),
            "mintedAt": self.minted_at.isoformat() if self.is_member else "",
            "tokenURI": self.token_uri,
        }
