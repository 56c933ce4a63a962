"""
Inventory checks for quoting and flip funding.

Each token is held in two places: the maker's wallet and the maker's
internal balance inside the DEX. Placing an order can draw on both, but a
flip successor is funded from the internal balance only, and a flip that
cannot be funded is dropped by the exchange without an error.

Rebalancing across pairs is out of scope; has_flip_buffer() is the
single-token check that stands in for it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from stableflip.core.flip import Side
from stableflip.core.units import format_units, parse_units


@dataclass(frozen=True)
class QuoteSizing:
    """Human-denominated order size and internal buffer, scaled per token."""
    order_size: str = "100"
    min_internal_buffer: str = "120"

    def order_units(self, decimals: int) -> int:
        return parse_units(self.order_size, decimals)

    def buffer_units(self, decimals: int) -> int:
        return parse_units(self.min_internal_buffer, decimals)


@dataclass(frozen=True)
class TokenBalance:
    symbol: str
    decimals: int
    wallet: int
    dex: int

    @property
    def total(self) -> int:
        return self.wallet + self.dex

    def describe(self) -> str:
        return (
            f"{self.symbol}: wallet={format_units(self.wallet, self.decimals)} "
            f"dex={format_units(self.dex, self.decimals)}"
        )


@dataclass(frozen=True)
class InventorySnapshot:
    base: TokenBalance
    quote: TokenBalance

    def for_symbol(self, symbol: str) -> TokenBalance:
        return self.base if symbol == self.base.symbol else self.quote

    def to_log(self) -> dict:
        return {
            "base": self.base.symbol,
            "base_wallet": str(self.base.wallet),
            "base_dex": str(self.base.dex),
            "quote": self.quote.symbol,
            "quote_wallet": str(self.quote.wallet),
            "quote_dex": str(self.quote.dex),
        }


@dataclass(frozen=True)
class QuotabilityCheck:
    ok: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class FlipBufferCheck:
    ok: bool
    internal: int
    required: int

    @property
    def missing(self) -> int:
        return max(0, self.required - self.internal)


async def fetch_token_balance(dex, symbol: str) -> TokenBalance:
    decimals, wallet, internal = await asyncio.gather(
        dex.get_decimals(symbol),
        dex.get_wallet_balance(symbol),
        dex.get_dex_balance(symbol),
    )
    return TokenBalance(symbol=symbol, decimals=decimals, wallet=wallet, dex=internal)


async def fetch_inventory(dex, base: str, quote: str) -> InventorySnapshot:
    base_balance = await fetch_token_balance(dex, base)
    quote_balance = await fetch_token_balance(dex, quote)
    return InventorySnapshot(base=base_balance, quote=quote_balance)


def can_quote_pair(inventory: InventorySnapshot, sizing: QuoteSizing) -> QuotabilityCheck:
    """Both tokens must cover one order from wallet plus internal balance."""
    for balance in (inventory.base, inventory.quote):
        needed = sizing.order_units(balance.decimals)
        if balance.total < needed:
            return QuotabilityCheck(
                ok=False,
                reason=(
                    f"insufficient {balance.symbol}: have {format_units(balance.total, balance.decimals)}, "
                    f"need {format_units(needed, balance.decimals)}"
                ),
            )
    return QuotabilityCheck(ok=True)


def flip_funding_symbol(filled_side: Side, base: str, quote: str) -> str:
    """
    Token that funds the successor of a filled order.

    A filled bid flips into an ask, which escrows base; a filled ask flips
    into a bid, which escrows quote.
    """
    return base if filled_side is Side.BID else quote


def has_flip_buffer(balance: TokenBalance, sizing: QuoteSizing) -> FlipBufferCheck:
    required = sizing.order_units(balance.decimals) + sizing.buffer_units(balance.decimals)
    return FlipBufferCheck(ok=balance.dex >= required, internal=balance.dex, required=required)
