"""
Tests for ReconciliationService.
"""
import pytest
from unittest.mock import MagicMock

import httpx

from stableflip.core.flip import Side
from stableflip.execution.reconciliation_service import ReconciliationService

from conftest import MAKER


@pytest.fixture
def service(fake_dex, store):
    return ReconciliationService(dex=fake_dex, store=store)


def _store_quote(store, state, bid="11", ask="12"):
    store.update_pair_orders(
        state, "AlphaUSD", "pathUSD",
        bid_order_id=bid, ask_order_id=ask,
        last_bid_tick=-50, last_ask_tick=50,
        last_bid_flip_tick=50, last_ask_flip_tick=-50,
    )


class TestReconcileOrders:

    @pytest.mark.asyncio
    async def test_live_orders_are_kept(self, service, fake_dex, store, state):
        _store_quote(store, state)
        fake_dex.add_order(11, True, -50, 50)
        fake_dex.add_order(12, False, 50, -50)

        result = await service.reconcile_orders(state, "AlphaUSD", "pathUSD")

        assert result.bid_valid and result.ask_valid
        assert result.stale_order_ids == []
        pair = state.find_pair("AlphaUSD", "pathUSD")
        assert (pair.bid_order_id, pair.ask_order_id) == ("11", "12")

    @pytest.mark.asyncio
    async def test_not_found_is_cleared(self, service, fake_dex, store, state):
        _store_quote(store, state)
        fake_dex.add_order(12, False, 50, -50)

        result = await service.reconcile_orders(state, "AlphaUSD", "pathUSD")

        assert not result.bid_valid
        assert result.ask_valid
        assert result.stale_order_ids == ["11"]
        assert result.cleared_sides == [Side.BID]
        pair = store.load(MAKER).find_pair("AlphaUSD", "pathUSD")
        assert pair.bid_order_id is None
        assert pair.ask_order_id == "12"
        # recorded ticks survive for flip tracking
        assert pair.last_bid_flip_tick == 50

    @pytest.mark.asyncio
    async def test_fully_filled_is_cleared(self, service, fake_dex, store, state):
        _store_quote(store, state)
        fake_dex.add_order(11, True, -50, 50, remaining=0)
        fake_dex.add_order(12, False, 50, -50)

        result = await service.reconcile_orders(state, "AlphaUSD", "pathUSD")

        assert result.cleared_sides == [Side.BID]
        assert state.find_pair("AlphaUSD", "pathUSD").bid_order_id is None

    @pytest.mark.asyncio
    async def test_empty_sides_are_not_looked_up(self, service, store, state):
        dex = MagicMock()
        svc = ReconciliationService(dex=dex, store=store)
        result = await svc.reconcile_orders(state, "AlphaUSD", "pathUSD")
        assert not result.bid_valid and not result.ask_valid
        dex.get_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error_propagates_and_keeps_ids(self, service, fake_dex, store, state):
        _store_quote(store, state)
        fake_dex.get_order_error = httpx.ConnectError("connection refused")

        with pytest.raises(httpx.ConnectError):
            await service.reconcile_orders(state, "AlphaUSD", "pathUSD")

        pair = store.load(MAKER).find_pair("AlphaUSD", "pathUSD")
        assert (pair.bid_order_id, pair.ask_order_id) == ("11", "12")

    @pytest.mark.asyncio
    async def test_stale_metric(self, fake_dex, store, state):
        metrics = MagicMock()
        svc = ReconciliationService(dex=fake_dex, store=store, rich_metrics=metrics)
        _store_quote(store, state)

        await svc.reconcile_orders(state, "AlphaUSD", "pathUSD")

        metrics.stale_orders_cleared.labels.assert_called_with(pair="AlphaUSD/pathUSD")
        assert metrics.stale_orders_cleared.labels.return_value.inc.call_count == 2


class TestFullReconcile:

    @pytest.mark.asyncio
    async def test_refreshes_ticks_from_chain(self, service, fake_dex, store, state):
        store.update_pair_orders(state, "AlphaUSD", "pathUSD", bid_order_id="11", last_bid_tick=-30)
        fake_dex.add_order(11, True, -50, 50)

        result = await service.full_reconcile(state, "AlphaUSD", "pathUSD")

        assert result.found_bid
        assert not result.found_ask
        assert result.orphaned_orders == []
        pair = state.find_pair("AlphaUSD", "pathUSD")
        assert pair.last_bid_tick == -50
        assert pair.last_bid_flip_tick == 50

    @pytest.mark.asyncio
    async def test_stale_ids_and_ticks_cleared(self, service, store, state):
        _store_quote(store, state)

        result = await service.full_reconcile(state, "AlphaUSD", "pathUSD")

        assert not result.found_bid and not result.found_ask
        pair = store.load(MAKER).find_pair("AlphaUSD", "pathUSD")
        assert pair.bid_order_id is None and pair.ask_order_id is None
        assert pair.last_bid_tick is None and pair.last_ask_flip_tick is None

    @pytest.mark.asyncio
    async def test_creates_pair_entry(self, service, state):
        result = await service.full_reconcile(state, "AlphaUSD", "pathUSD")
        assert not result.found_bid
        assert state.find_pair("AlphaUSD", "pathUSD") is not None
