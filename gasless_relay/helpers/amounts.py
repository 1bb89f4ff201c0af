"""
Human-readable <-> raw token amount conversion.

All arithmetic is done on decimal strings and Python integers so no
precision is lost for 18-decimal tokens.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from .errors import EncodingError

__all__ = [
    "to_raw",
    "to_human",
    "format_amount",
    "format_usd",
    "AmountConverter",
]

_DIGITS_RE = re.compile(r"^[0-9]*$")


def _normalize_human(human: str | int | float | Decimal) -> str:
    if isinstance(human, bool):
        raise EncodingError("amount must be a number or decimal string")
    if isinstance(human, (int, float, Decimal)):
        try:
            dec = Decimal(str(human))
        except InvalidOperation as e:
            raise EncodingError(f"invalid amount: {human!r}") from e
        if not dec.is_finite():
            raise EncodingError(f"invalid amount: {human!r}")
        return format(dec, "f")
    if isinstance(human, str):
        return human.strip()
    raise EncodingError(f"invalid amount type: {type(human).__name__}")


def to_raw(human: str | int | float | Decimal, decimals: int) -> int:
    """
    Convert a human amount to base units.

    ``to_raw("100.5", 6) == 100500000``. More fractional digits than
    ``decimals``, negative amounts and multiple decimal points are rejected.
    """
    if decimals < 0:
        raise EncodingError(f"decimals cannot be negative: {decimals}")

    text = _normalize_human(human)
    if text.startswith("-"):
        raise EncodingError(f"amount cannot be negative: {text}")
    if text.startswith("+"):
        text = text[1:]

    parts = text.split(".")
    if len(parts) > 2:
        raise EncodingError(f"amount has multiple decimal points: {text}")

    whole = parts[0]
    frac = parts[1] if len(parts) == 2 else ""
    if not whole and not frac:
        raise EncodingError(f"empty amount: {human!r}")
    if not _DIGITS_RE.match(whole) or not _DIGITS_RE.match(frac):
        raise EncodingError(f"invalid amount: {text}")
    if len(frac) > decimals:
        raise EncodingError(f"amount {text} has more than {decimals} decimal places")

    digits = (whole + frac.ljust(decimals, "0")).lstrip("0")
    return int(digits or "0")


def _split(raw: int, decimals: int) -> tuple[int, str]:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise EncodingError(f"raw amount must be an integer, got {type(raw).__name__}")
    if raw < 0:
        raise EncodingError(f"raw amount cannot be negative: {raw}")
    if decimals < 0:
        raise EncodingError(f"decimals cannot be negative: {decimals}")
    whole, remainder = divmod(raw, 10 ** decimals)
    return whole, str(remainder).rjust(decimals, "0") if remainder else ""


def to_human(raw: int, decimals: int) -> str:
    """``to_human(100500000, 6) == "100.5"``; integral values carry no fraction."""
    whole, frac = _split(raw, decimals)
    frac = frac.rstrip("0")
    return f"{whole}.{frac}" if frac else str(whole)


def format_amount(raw: int, decimals: int, max_fraction_digits: int | None = None) -> str:
    """
    Like :func:`to_human`, but with ``max_fraction_digits`` the fraction is
    truncated (never rounded) to that many digits.
    """
    whole, frac = _split(raw, decimals)
    if not frac:
        return str(whole)
    if max_fraction_digits is None:
        frac = frac.rstrip("0")
    else:
        frac = frac[:max(0, min(max_fraction_digits, decimals))]
    return f"{whole}.{frac}" if frac else str(whole)


def format_usd(value: float) -> str:
    """``$1.23M`` above a million, ``$1,234.56`` above a thousand, else ``$12.34``."""
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1000:
        return f"${value:,.2f}"
    return f"${value:.2f}"


class AmountConverter:
    """Amount conversion bound to a fixed decimal count."""

    def __init__(self, decimals: int):
        if decimals < 0:
            raise EncodingError(f"decimals cannot be negative: {decimals}")
        self.decimals = decimals
        self.multiplier = 10 ** decimals

    def to_raw(self, human: str | int | float | Decimal) -> int:
        return to_raw(human, self.decimals)

    def to_human(self, raw: int) -> str:
        return to_human(raw, self.decimals)

    def format(self, raw: int, max_fraction_digits: int | None = None) -> str:
        return format_amount(raw, self.decimals, max_fraction_digits)

    def __repr__(self) -> str:
        return f"AmountConverter(decimals={self.decimals})"
