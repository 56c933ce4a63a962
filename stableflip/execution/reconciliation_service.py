"""
ReconciliationService: keeps persisted order ids honest against the chain.

The exchange deletes an order once it is fully filled or cancelled, so a
stored id whose order no longer exists (or has nothing left to fill) is
stale and is cleared. That frees the side to be re-quoted.

Two flavours:
- reconcile_orders(): per-cycle check of the stored ids
- full_reconcile(): startup check that also refreshes the recorded ticks
  from the chain record

A failed lookup is not "not found". Transport and node errors propagate so
a flaky RPC can never wipe a live order from state and cause a duplicate
placement.

Orders whose id was never persisted (crash between submission and save)
cannot be discovered here; orphaned_orders is always empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

from stableflip.core.flip import Side
from stableflip.infra.logging_cfg import log_event
from stableflip.state.models import EngineState, PairState
from stableflip.state.state_store import StateStore

if TYPE_CHECKING:
    from stableflip.infra.async_execution import AsyncDex
    from stableflip.monitoring.metrics_rich import RichMetrics

log = logging.getLogger("stableflip")


@dataclass
class ReconcileResult:
    """Result of a per-cycle reconcile."""
    bid_valid: bool
    ask_valid: bool
    stale_order_ids: List[str] = field(default_factory=list)
    cleared_sides: List[Side] = field(default_factory=list)

    def valid(self, side: Side) -> bool:
        return self.bid_valid if side is Side.BID else self.ask_valid


@dataclass
class FullReconcileResult:
    """Result of a startup reconcile."""
    found_bid: bool
    found_ask: bool
    orphaned_orders: List[str] = field(default_factory=list)


class ReconciliationService:
    """
    Usage:
        service = ReconciliationService(dex=async_dex, store=store)

        # startup
        await service.full_reconcile(state, "AlphaUSD", "pathUSD")

        # each cycle
        result = await service.reconcile_orders(state, "AlphaUSD", "pathUSD")
    """

    def __init__(
        self,
        dex: "AsyncDex",
        store: StateStore,
        rich_metrics: Optional["RichMetrics"] = None,
    ) -> None:
        self.dex = dex
        self.store = store
        self.rich_metrics = rich_metrics

    async def _check_side(self, pair: PairState, side: Side):
        """Returns (still_live, order_record). Raises on transport errors."""
        order_id = pair.order_id(side)
        if not order_id:
            return False, None
        order = await self.dex.get_order(order_id)
        if order is None or not order.is_live:
            return False, order
        return True, order

    def _record_stale(self, pair: PairState, side: Side, order_id: str, reason: str) -> None:
        log_event(
            log, "reconcile_stale_order",
            pair=pair.key, side=side.value, order_id=order_id, reason=reason,
        )
        if self.rich_metrics:
            self.rich_metrics.stale_orders_cleared.labels(pair=pair.key).inc()

    async def reconcile_orders(self, state: EngineState, base: str, quote: str) -> ReconcileResult:
        pair = self.store.get_pair_state(state, base, quote)
        result = ReconcileResult(bid_valid=False, ask_valid=False)
        updates = {}

        for side in (Side.BID, Side.ASK):
            order_id = pair.order_id(side)
            live, order = await self._check_side(pair, side)
            if side is Side.BID:
                result.bid_valid = live
            else:
                result.ask_valid = live
            if order_id and not live:
                self._record_stale(pair, side, order_id, "not_found" if order is None else "filled")
                result.stale_order_ids.append(order_id)
                result.cleared_sides.append(side)
                updates[f"{side.value}_order_id"] = None

        if updates:
            self.store.update_pair_orders(state, base, quote, **updates)
        return result

    async def full_reconcile(self, state: EngineState, base: str, quote: str) -> FullReconcileResult:
        pair = self.store.get_pair_state(state, base, quote)
        result = FullReconcileResult(found_bid=False, found_ask=False)
        updates = {}

        for side in (Side.BID, Side.ASK):
            order_id = pair.order_id(side)
            if not order_id:
                continue
            live, order = await self._check_side(pair, side)
            prefix = side.value
            if live:
                updates[f"last_{prefix}_tick"] = order.tick
                updates[f"last_{prefix}_flip_tick"] = order.flip_tick
                if side is Side.BID:
                    result.found_bid = True
                else:
                    result.found_ask = True
                log_event(
                    log, "reconcile_order_found",
                    pair=pair.key, side=prefix, order_id=order_id,
                    tick=order.tick, flip_tick=order.flip_tick, remaining=str(order.remaining),
                )
            else:
                self._record_stale(pair, side, order_id, "not_found" if order is None else "filled")
                updates[f"{prefix}_order_id"] = None
                updates[f"last_{prefix}_tick"] = None
                updates[f"last_{prefix}_flip_tick"] = None

        self.store.update_pair_orders(state, base, quote, **updates)
        log_event(
            log, "reconcile_complete",
            pair=pair.key, found_bid=result.found_bid, found_ask=result.found_ask,
        )
        return result
