"""
Cancellation of the orders the engine has on record.

Each cancel is a transaction: it reserves a slot in both the daily budget
and the hourly cancel budget before it is sent. The stored id is cleared
only once the cancel is mined, so an interrupted run can simply be
repeated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

from stableflip.core.errors import TransactionFailed
from stableflip.core.flip import Side
from stableflip.infra.logging_cfg import log_event
from stableflip.risk.budget import BudgetEnforcer
from stableflip.state.models import EngineState
from stableflip.state.state_store import StateStore

if TYPE_CHECKING:
    from stableflip.config.pairs import PairConfig
    from stableflip.infra.async_execution import AsyncDex
    from stableflip.monitoring.metrics_rich import RichMetrics

log = logging.getLogger("stableflip")


@dataclass
class CancelSummary:
    cancelled: List[str] = field(default_factory=list)
    already_gone: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    budget_exhausted: bool = False


async def cancel_stored_orders(
    dex: "AsyncDex",
    store: StateStore,
    budget: BudgetEnforcer,
    state: EngineState,
    pairs: List[PairConfig],
    rich_metrics: Optional["RichMetrics"] = None,
) -> CancelSummary:
    summary = CancelSummary()
    for pair in pairs:
        pair_state = store.get_pair_state(state, pair.base, pair.quote)
        for side in (Side.BID, Side.ASK):
            order_id = pair_state.order_id(side)
            if not order_id:
                continue

            order = await dex.get_order(order_id)
            if order is None or not order.is_live:
                store.update_pair_orders(state, pair.base, pair.quote, **{f"{side.value}_order_id": None})
                summary.already_gone.append(order_id)
                continue

            reservation = budget.increment_tx_counter(state, is_cancel=True)
            if not reservation.allowed:
                summary.budget_exhausted = True
                return summary

            try:
                result = await dex.cancel_order(order_id)
            except TransactionFailed as exc:
                log_event(log, "cancel_failed", level=logging.ERROR, pair=pair.key, order_id=order_id, error=str(exc))
                summary.failed.append(order_id)
                continue

            store.update_pair_orders(state, pair.base, pair.quote, **{f"{side.value}_order_id": None})
            summary.cancelled.append(order_id)
            log_event(
                log, "order_cancelled",
                pair=pair.key, side=side.value, order_id=order_id, tx_hash=result.tx_hash,
                hourly_remaining=reservation.hourly_remaining,
            )
            if rich_metrics:
                rich_metrics.orders_cancelled.labels(pair=pair.key).inc()
    return summary
