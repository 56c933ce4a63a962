"""
BudgetEnforcer: shared transaction budget across placements and cancels.

Two windows live in EngineState.tx_counters:
- daily: every transaction; resets when the UTC calendar date changes
- hourly: cancels only; resets once an hour has elapsed since the window start

Budget is reserved before a submission and never refunded, so a failed or
reverted transaction still consumes its slot. Counters only reset at a
window boundary.

check_tx_budget() and increment_tx_counter() contain no await, so a
check-and-increment cannot interleave with another one on the event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from stableflip.infra.logging_cfg import log_event
from stableflip.state.models import EngineState, TxCounters, from_iso, to_iso
from stableflip.state.state_store import StateStore

log = logging.getLogger("stableflip")

HOURLY_WINDOW = timedelta(hours=1)


@dataclass
class BudgetConfig:
    max_tx_per_day: int = 100
    max_cancels_per_hour: int = 10


@dataclass(frozen=True)
class BudgetCheck:
    """Outcome of a budget check. hourly_remaining is None for non-cancel transactions."""
    allowed: bool
    daily_remaining: int
    hourly_remaining: Optional[int] = None


class BudgetEnforcer:
    def __init__(
        self,
        store: StateStore,
        config: Optional[BudgetConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.config = config or BudgetConfig()
        self._clock = clock or store.now

    def _windows_after_reset(self, counters: TxCounters, now: datetime) -> TxCounters:
        """Counters as they would be after applying any due window resets."""
        daily_count = counters.daily_tx_count
        daily_reset_at = counters.daily_reset_at
        if not daily_reset_at or from_iso(daily_reset_at).date() != now.date():
            daily_count = 0
            daily_reset_at = to_iso(now)

        hourly_count = counters.hourly_cancel_count
        hourly_reset_at = counters.hourly_reset_at
        if not hourly_reset_at or now - from_iso(hourly_reset_at) >= HOURLY_WINDOW:
            hourly_count = 0
            hourly_reset_at = to_iso(now)

        return TxCounters(
            daily_tx_count=daily_count,
            daily_reset_at=daily_reset_at,
            hourly_cancel_count=hourly_count,
            hourly_reset_at=hourly_reset_at,
        )

    def _evaluate(self, counters: TxCounters, is_cancel: bool) -> BudgetCheck:
        daily_remaining = max(0, self.config.max_tx_per_day - counters.daily_tx_count)
        if not is_cancel:
            return BudgetCheck(allowed=daily_remaining > 0, daily_remaining=daily_remaining)
        hourly_remaining = max(0, self.config.max_cancels_per_hour - counters.hourly_cancel_count)
        return BudgetCheck(
            allowed=daily_remaining > 0 and hourly_remaining > 0,
            daily_remaining=daily_remaining,
            hourly_remaining=hourly_remaining,
        )

    def check_tx_budget(self, state: EngineState, is_cancel: bool = False) -> BudgetCheck:
        """Preview whether one more transaction fits. Does not mutate state."""
        counters = self._windows_after_reset(state.tx_counters, self._clock())
        return self._evaluate(counters, is_cancel)

    def increment_tx_counter(self, state: EngineState, is_cancel: bool = False) -> BudgetCheck:
        """
        Reserve one transaction slot.

        Window resets are applied first. When the budget allows it the
        counters are incremented and persisted; the returned remainders
        are post-increment. A rejected reservation leaves the counters as
        they were.
        """
        now = self._clock()
        counters = self._windows_after_reset(state.tx_counters, now)
        check = self._evaluate(counters, is_cancel)
        if not check.allowed:
            log_event(
                log, "budget_exhausted", level=logging.WARNING,
                is_cancel=is_cancel,
                daily_tx_count=counters.daily_tx_count,
                hourly_cancel_count=counters.hourly_cancel_count,
            )
            return check

        counters.daily_tx_count += 1
        if is_cancel:
            counters.hourly_cancel_count += 1
        state.tx_counters = counters
        self.store.save(state)
        return BudgetCheck(
            allowed=True,
            daily_remaining=check.daily_remaining - 1,
            hourly_remaining=None if check.hourly_remaining is None else check.hourly_remaining - 1,
        )
