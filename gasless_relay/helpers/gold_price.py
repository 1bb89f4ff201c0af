"""
Gold price quote.

One token is backed by one milligram of gold, so the relay's price feed
quotes USD per milligram.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import RelayError

__all__ = ["GRAMS_PER_TROY_OUNCE", "GoldPrice", "extract_gold_price"]

GRAMS_PER_TROY_OUNCE = 31.1035


@dataclass(frozen=True)
class GoldPrice:
    price_per_mg: float
    fetched_at: float

    @property
    def price_per_gram(self) -> float:
        return self.price_per_mg * 1000

    @property
    def price_per_ounce(self) -> float:
        return self.price_per_gram * GRAMS_PER_TROY_OUNCE

    @property
    def formatted_price_per_mg(self) -> str:
        return f"${self.price_per_mg:.6f}"

    @property
    def formatted_price_per_gram(self) -> str:
        return f"${self.price_per_gram:.2f}"

    @property
    def formatted_price_per_ounce(self) -> str:
        return f"${self.price_per_ounce:.2f}"


def _as_price(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def extract_gold_price(payload: Any) -> float:
    """
    Pull the per-mg price out of a price-feed response.

    Accepted shapes: a bare number, ``{"price"}``, ``{"result": number}``,
    ``{"result": {"price" | "pricePerMg"}}`` and ``{"data": {"price"}}``.
    """
    price = _as_price(payload)
    if price is not None:
        return price

    if isinstance(payload, dict):
        if "price" in payload:
            price = _as_price(payload["price"])
            if price is not None:
                return price

        result = payload.get("result")
        price = _as_price(result)
        if price is not None:
            return price
        if isinstance(result, dict):
            for key in ("price", "pricePerMg"):
                price = _as_price(result.get(key))
                if price is not None:
                    return price

        data = payload.get("data")
        if isinstance(data, dict):
            price = _as_price(data.get("price"))
            if price is not None:
                return price

    raise RelayError(f"Unable to extract gold price from response: {payload!r}", payload=payload)
