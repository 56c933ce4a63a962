"""
Token amount helpers.

Human amounts ("100", "0.5") are converted to integer base units with
Decimal so no float rounding leaks into on-chain amounts.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

MAX_UINT256 = 2 ** 256 - 1


def parse_units(amount: str | int | Decimal, decimals: int) -> int:
    """Human amount -> integer base units, truncating excess precision."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {amount!r}") from exc
    scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def format_units(amount: int, decimals: int, places: int = 2) -> str:
    value = Decimal(amount) / (Decimal(10) ** decimals)
    return f"{value:,.{places}f}"
