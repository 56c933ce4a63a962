"""
Tests for inventory checks.
"""
import pytest

from stableflip.core.flip import Side
from stableflip.execution.inventory import (
    InventorySnapshot,
    QuoteSizing,
    TokenBalance,
    can_quote_pair,
    fetch_inventory,
    flip_funding_symbol,
    has_flip_buffer,
)

from conftest import ONE

SIZING = QuoteSizing(order_size="100", min_internal_buffer="120")


def _balance(symbol, wallet, dex, decimals=6):
    return TokenBalance(symbol=symbol, decimals=decimals, wallet=wallet * ONE, dex=dex * ONE)


class TestQuotability:

    def test_wallet_and_internal_are_combined(self):
        inventory = InventorySnapshot(base=_balance("AlphaUSD", 60, 40), quote=_balance("pathUSD", 0, 100))
        assert can_quote_pair(inventory, SIZING).ok

    def test_short_token_is_named(self):
        inventory = InventorySnapshot(base=_balance("AlphaUSD", 500, 0), quote=_balance("pathUSD", 50, 49))
        check = can_quote_pair(inventory, SIZING)
        assert not check.ok
        assert "pathUSD" in check.reason

    def test_sizing_respects_decimals(self):
        assert SIZING.order_units(6) == 100 * ONE
        assert SIZING.order_units(18) == 100 * 10 ** 18
        assert SIZING.buffer_units(6) == 120 * ONE


class TestFlipFunding:

    def test_funding_symbol(self):
        assert flip_funding_symbol(Side.BID, "AlphaUSD", "pathUSD") == "AlphaUSD"
        assert flip_funding_symbol(Side.ASK, "AlphaUSD", "pathUSD") == "pathUSD"

    def test_buffer_needs_order_plus_buffer(self):
        ok = has_flip_buffer(_balance("AlphaUSD", 0, 220), SIZING)
        assert ok.ok
        assert ok.missing == 0

        short = has_flip_buffer(_balance("AlphaUSD", 1_000, 219), SIZING)
        assert not short.ok
        assert short.required == 220 * ONE
        assert short.missing == ONE


class TestFetch:

    @pytest.mark.asyncio
    async def test_fetch_inventory(self, fake_dex):
        fake_dex.wallet["pathUSD"] = 7 * ONE
        inventory = await fetch_inventory(fake_dex, "AlphaUSD", "pathUSD")
        assert inventory.base.symbol == "AlphaUSD"
        assert inventory.quote.wallet == 7 * ONE
        assert inventory.for_symbol("pathUSD") is inventory.quote
        assert inventory.to_log()["quote_wallet"] == str(7 * ONE)
