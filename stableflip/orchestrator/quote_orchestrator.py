"""
QuoteOrchestrator: the quote lifecycle state machine.

    IDLE -> BOOTSTRAP -> RUNNING <-> COOLDOWN
                 |           |
                 +-----------+--> STOPPED

Bootstrap (once):
    For each enabled pair: make sure the order book exists, approve the DEX
    for both tokens, snapshot inventory, check the pair can be quoted, then
    run a full reconcile so persisted order ids match the chain. Pair
    creation or approval failure is fatal; an unquotable pair is only a
    warning and is re-checked before it is quoted.

Running (one pass per loop tick, pairs in configured order):
    1. check_order_status  - stored ids that are gone or empty are fills;
                             fills of flip orders schedule a flip check
    2. handle_flip_failure - after the flip timeout, look for the successor
                             order; if it is missing or the lookup fails,
                             diagnose the internal balance shortfall.
                             Each check runs once and never blocks step 3
    3. quote_pair          - re-quote empty sides under the per-pair
                             cooldown, budget and jitter rules

A pair step that raises (RPC outage, revert, ...) is logged and abandoned
for the pass; the next pass retries it. A state write failure is fatal.

Cooldown:
    When the daily transaction budget is used up the engine sleeps for the
    budget cooldown instead of the loop interval.

Termination:
    stop() sets a flag checked between pairs and between passes; sleeps wake
    immediately, in-flight chain calls are allowed to finish. The state is
    saved on the way out.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from stableflip.config.pairs import PairConfig
from stableflip.core.errors import (
    FlipConstraintViolation,
    InvalidTickError,
    StatePersistenceError,
    TransactionFailed,
)
from stableflip.core.flip import Side, build_quote_params
from stableflip.core.ticks import DEFAULT_SPREAD_BPS, TickGrid
from stableflip.core.units import format_units
from stableflip.execution.inventory import (
    QuoteSizing,
    can_quote_pair,
    fetch_inventory,
    fetch_token_balance,
    flip_funding_symbol,
    has_flip_buffer,
)
from stableflip.execution.reconciliation_service import ReconciliationService
from stableflip.infra.logging_cfg import log_event
from stableflip.risk.budget import BudgetEnforcer
from stableflip.state.models import EngineState, SideStatus
from stableflip.state.state_store import StateStore

if TYPE_CHECKING:
    from stableflip.infra.async_execution import AsyncDex
    from stableflip.infra.dex_client import OrderRecord
    from stableflip.monitoring.metrics_rich import RichMetrics

log = logging.getLogger("stableflip")


class EngineStatus(Enum):
    IDLE = auto()
    BOOTSTRAP = auto()
    RUNNING = auto()
    COOLDOWN = auto()
    STOPPED = auto()


@dataclass
class OrchestratorConfig:
    """Configuration for QuoteOrchestrator."""
    total_spread_bps: float = DEFAULT_SPREAD_BPS
    sizing: QuoteSizing = field(default_factory=QuoteSizing)
    cooldown_sec: float = 60.0  # min time between quote attempts per pair
    jitter_sec: float = 5.0  # upper bound of the random delay before each submission
    flip_timeout_sec: float = 10.0  # wait before checking a flip successor
    loop_interval_sec: float = 10.0
    budget_cooldown_sec: float = 3600.0


@dataclass
class FlipWatch:
    """A filled flip order whose successor has not been verified yet."""
    base: str
    quote: str
    filled_side: Side
    filled_order_id: str
    expected_tick: int
    due_at: float

    @property
    def pair_key(self) -> str:
        return f"{self.base}/{self.quote}"

    @property
    def successor_side(self) -> Side:
        return self.filled_side.opposite


@dataclass
class PassResult:
    """Result of one pass over all pairs."""
    pairs_processed: int = 0
    fills_detected: int = 0
    orders_placed: int = 0
    errors: int = 0
    budget_exhausted: bool = False
    stopped_early: bool = False


class QuoteOrchestrator:
    """
    Usage:
        orchestrator = QuoteOrchestrator(
            dex=async_dex,
            store=store,
            budget=BudgetEnforcer(store, cfg.budget),
            reconciler=ReconciliationService(async_dex, store),
            grid=cfg.tick_grid,
            pairs=cfg.enabled_pairs,
            maker_address=account,
            config=OrchestratorConfig(...),
        )

        exit_code = await orchestrator.run()          # continuous
        result = await orchestrator.run_single_cycle()  # --once
    """

    def __init__(
        self,
        dex: "AsyncDex",
        store: StateStore,
        budget: BudgetEnforcer,
        reconciler: ReconciliationService,
        grid: TickGrid,
        pairs: List[PairConfig],
        maker_address: str,
        config: Optional[OrchestratorConfig] = None,
        rich_metrics: Optional["RichMetrics"] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.dex = dex
        self.store = store
        self.budget = budget
        self.reconciler = reconciler
        self.grid = grid
        self.pairs = [p for p in pairs if p.enabled]
        self.maker_address = maker_address
        self.config = config or OrchestratorConfig()
        self.rich_metrics = rich_metrics
        self._clock = clock
        self._rng = rng or random.Random()

        self.status = EngineStatus.IDLE
        self.state: Optional[EngineState] = None
        self._stop = asyncio.Event()
        self._last_quote_at: Dict[str, float] = {}
        self._unquotable: Set[str] = set()
        self._flip_watches: List[FlipWatch] = []
        self._side_status: Dict[Tuple[str, Side], SideStatus] = {}

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _set_status(self, status: EngineStatus) -> None:
        if status is self.status:
            return
        log_event(log, "engine_status", previous=self.status.name, status=status.name)
        self.status = status
        if self.rich_metrics:
            self.rich_metrics.engine_status.set(status.value - 1)

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    @property
    def pending_flip_checks(self) -> List[FlipWatch]:
        return list(self._flip_watches)

    def side_status(self, base: str, quote: str, side: Side) -> SideStatus:
        """Transient status from the current pass, else derived from the stored id."""
        transient = self._side_status.get((f"{base}/{quote}", side))
        if transient is not None:
            return transient
        pair = self.state.find_pair(base, quote) if self.state else None
        return pair.side_status(side) if pair else SideStatus.EMPTY

    def stop(self) -> None:
        if not self._stop.is_set():
            log_event(log, "engine_stop_requested", status=self.status.name)
        self._stop.set()

    async def _sleep(self, seconds: float) -> None:
        """Sleep that wakes early when stop() is called."""
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def bootstrap(self) -> bool:
        """Prepare every enabled pair. Returns False on a fatal failure."""
        self._set_status(EngineStatus.BOOTSTRAP)
        self.state = self.store.load(self.maker_address)
        log_event(log, "bootstrap_start", maker=self.maker_address, pairs=[p.key for p in self.pairs])

        for pair in self.pairs:
            if self._stop.is_set():
                return False
            try:
                created = await self.dex.ensure_pair_exists(pair.base)
                for symbol in (pair.base, pair.quote):
                    await self.dex.ensure_allowance(symbol)
            except Exception as exc:
                log_event(
                    log, "bootstrap_failed", level=logging.CRITICAL,
                    pair=pair.key, error=str(exc), error_type=type(exc).__name__,
                )
                return False
            log_event(log, "bootstrap_pair_ready", pair=pair.key, created=created)

            try:
                inventory = await fetch_inventory(self.dex, pair.base, pair.quote)
                log_event(log, "bootstrap_inventory", pair=pair.key, **inventory.to_log())
                check = can_quote_pair(inventory, self.config.sizing)
                if not check.ok:
                    self._unquotable.add(pair.key)
                    log_event(log, "bootstrap_unquotable", level=logging.WARNING, pair=pair.key, reason=check.reason)

                await self.reconciler.full_reconcile(self.state, pair.base, pair.quote)
            except StatePersistenceError:
                raise
            except Exception as exc:
                log_event(
                    log, "bootstrap_failed", level=logging.CRITICAL,
                    pair=pair.key, error=str(exc), error_type=type(exc).__name__,
                )
                return False

        self._set_status(EngineStatus.RUNNING)
        log_event(log, "bootstrap_complete", pairs=len(self.pairs), unquotable=sorted(self._unquotable))
        return True

    # ------------------------------------------------------------------
    # Per-pair steps
    # ------------------------------------------------------------------

    async def check_order_status(self, pair: PairConfig) -> List[Side]:
        """Detect fills of stored orders. Returns the sides found filled."""
        pair_state = self.store.get_pair_state(self.state, pair.base, pair.quote)
        before = {
            side: (pair_state.order_id(side), pair_state.last_tick(side), pair_state.last_flip_tick(side))
            for side in (Side.BID, Side.ASK)
        }

        result = await self.reconciler.reconcile_orders(self.state, pair.base, pair.quote)

        for side in result.cleared_sides:
            order_id, tick, flip_tick = before[side]
            self._side_status[(pair.key, side)] = SideStatus.FILLED
            log_event(log, "order_filled", pair=pair.key, side=side.value, order_id=order_id, tick=tick)
            if self.rich_metrics:
                self.rich_metrics.orders_filled.labels(pair=pair.key, side=side.value).inc()
            if flip_tick is None:
                continue
            log_event(
                log, "flip_successor_expected",
                pair=pair.key, filled_side=side.value, successor_side=side.opposite.value,
                expected_tick=flip_tick,
            )
            self._flip_watches.append(FlipWatch(
                base=pair.base,
                quote=pair.quote,
                filled_side=side,
                filled_order_id=order_id,
                expected_tick=flip_tick,
                due_at=self._clock() + self.config.flip_timeout_sec,
            ))
        return list(result.cleared_sides)

    async def handle_flip_failure(self, pair: PairConfig) -> int:
        """
        Verify successors of filled flip orders whose timeout has passed.
        Returns the number of flips diagnosed as failed.
        """
        now = self._clock()
        due = [w for w in self._flip_watches if w.pair_key == pair.key and w.due_at <= now]
        failed = 0
        for watch in due:
            # a watch is checked once, whatever the outcome
            self._flip_watches.remove(watch)
            try:
                successor = await self._find_successor(watch)
                if successor is not None:
                    self._adopt_successor(watch, successor)
                elif await self._diagnose_flip(watch):
                    failed += 1
            except StatePersistenceError:
                raise
            except Exception as exc:
                log_event(
                    log, "flip_check_error", level=logging.WARNING,
                    pair=watch.pair_key, filled_order_id=watch.filled_order_id,
                    error=str(exc), error_type=type(exc).__name__,
                )
        return failed

    async def _find_successor(self, watch: FlipWatch) -> Optional["OrderRecord"]:
        try:
            orders = await self.dex.find_maker_orders(watch.base)
        except Exception as exc:
            log_event(
                log, "flip_lookup_failed", level=logging.WARNING,
                pair=watch.pair_key, error=str(exc), error_type=type(exc).__name__,
            )
            return None
        pair_state = self.store.get_pair_state(self.state, watch.base, watch.quote)
        known = {pair_state.bid_order_id, pair_state.ask_order_id}
        for order in orders:
            if (
                order.is_live
                and order.is_bid == watch.successor_side.is_bid
                and order.tick == watch.expected_tick
                and str(order.order_id) not in known
            ):
                return order
        return None

    def _adopt_successor(self, watch: FlipWatch, successor: "OrderRecord") -> None:
        side = watch.successor_side
        pair_state = self.store.get_pair_state(self.state, watch.base, watch.quote)
        if pair_state.order_id(side):
            log_event(
                log, "flip_confirmed",
                pair=watch.pair_key, side=side.value, order_id=successor.order_id, tick=successor.tick,
            )
            return
        self.store.update_pair_orders(
            self.state, watch.base, watch.quote,
            **{
                f"{side.value}_order_id": successor.order_id,
                f"last_{side.value}_tick": successor.tick,
                f"last_{side.value}_flip_tick": successor.flip_tick,
            },
        )
        log_event(
            log, "flip_adopted",
            pair=watch.pair_key, side=side.value, order_id=successor.order_id, tick=successor.tick,
        )

    async def _diagnose_flip(self, watch: FlipWatch) -> bool:
        """True when the internal balance explains a missing successor."""
        # successor of a filled bid is an ask, escrowed in base
        symbol = flip_funding_symbol(watch.filled_side, watch.base, watch.quote)
        balance = await fetch_token_balance(self.dex, symbol)
        check = has_flip_buffer(balance, self.config.sizing)
        if check.ok:
            log_event(
                log, "flip_unconfirmed",
                pair=watch.pair_key, successor_side=watch.successor_side.value,
                expected_tick=watch.expected_tick, internal=str(check.internal),
            )
            return False
        log_event(
            log, "flip_failed", level=logging.WARNING,
            pair=watch.pair_key,
            filled_side=watch.filled_side.value,
            filled_order_id=watch.filled_order_id,
            expected_tick=watch.expected_tick,
            reason="insufficient_internal",
            token=symbol,
            internal=format_units(check.internal, balance.decimals),
            required=format_units(check.required, balance.decimals),
            missing=format_units(check.missing, balance.decimals),
        )
        if self.rich_metrics:
            self.rich_metrics.flip_failures.labels(
                pair=watch.pair_key, side=watch.filled_side.value, reason="insufficient_internal"
            ).inc()
        return True

    async def quote_pair(self, pair: PairConfig) -> int:
        """Place flip orders on empty sides. Returns the number placed."""
        pair_state = self.store.get_pair_state(self.state, pair.base, pair.quote)
        missing = [side for side in (Side.BID, Side.ASK) if not pair_state.order_id(side)]
        if not missing:
            return 0

        now = self._clock()
        last = self._last_quote_at.get(pair.key)
        if last is not None and now - last < self.config.cooldown_sec:
            log_event(
                log, "pair_cooldown", level=logging.DEBUG,
                pair=pair.key, remaining_sec=round(self.config.cooldown_sec - (now - last), 1),
            )
            return 0

        if pair.key in self._unquotable:
            self._last_quote_at[pair.key] = now
            inventory = await fetch_inventory(self.dex, pair.base, pair.quote)
            check = can_quote_pair(inventory, self.config.sizing)
            if not check.ok:
                log_event(log, "pair_unquotable", level=logging.WARNING, pair=pair.key, reason=check.reason)
                return 0
            self._unquotable.discard(pair.key)
            log_event(log, "pair_quotable", pair=pair.key)

        preview = self.budget.check_tx_budget(self.state)
        if not preview.allowed:
            log_event(log, "budget_exhausted", level=logging.WARNING, pair=pair.key, daily_remaining=0)
            return 0

        try:
            decimals = await self.dex.get_decimals(pair.base)
            params = build_quote_params(
                self.grid,
                pair.base,
                pair.quote,
                self.config.total_spread_bps,
                self.config.sizing.order_units(decimals),
                decimals,
            )
        except (InvalidTickError, FlipConstraintViolation) as exc:
            log_event(log, "quote_invalid", level=logging.ERROR, pair=pair.key, error=str(exc))
            return 0

        self._last_quote_at[pair.key] = now
        placed = 0
        for side in missing:
            order = params.flip_order(side)
            reservation = self.budget.increment_tx_counter(self.state)
            if not reservation.allowed:
                break
            if self.rich_metrics:
                self.rich_metrics.tx_budget_daily_remaining.set(reservation.daily_remaining)

            self._side_status[(pair.key, side)] = SideStatus.PENDING_CONFIRMATION
            try:
                await asyncio.sleep(self._rng.uniform(0, self.config.jitter_sec))
                started = time.monotonic()
                result = await self.dex.place_flip_order(order)
            except TransactionFailed as exc:
                self._side_status.pop((pair.key, side), None)
                self._record_tx_failure(pair, side, "reverted", exc)
                continue
            except Exception as exc:
                self._side_status.pop((pair.key, side), None)
                self._record_tx_failure(pair, side, "submit_error", exc)
                raise
            self._side_status.pop((pair.key, side), None)

            if self.rich_metrics:
                self.rich_metrics.orders_submitted.labels(pair=pair.key, side=side.value).inc()
                self.rich_metrics.submit_latency_ms.labels(pair=pair.key).observe(
                    (time.monotonic() - started) * 1000
                )

            if result.order_id is None:
                log_event(
                    log, "placement_unconfirmed", level=logging.ERROR,
                    pair=pair.key, side=side.value, tx_hash=result.tx_hash,
                )
                continue

            self.store.update_pair_orders(
                self.state, pair.base, pair.quote,
                **{
                    f"{side.value}_order_id": result.order_id,
                    f"last_{side.value}_tick": order.tick,
                    f"last_{side.value}_flip_tick": order.flip_tick,
                },
            )
            placed += 1
            log_event(
                log, "quote_placed",
                pair=pair.key, side=side.value, order_id=result.order_id,
                tick=order.tick, flip_tick=order.flip_tick, amount=str(order.amount),
                tx_hash=result.tx_hash, daily_remaining=reservation.daily_remaining,
            )
        return placed

    def _record_tx_failure(self, pair: PairConfig, side: Side, reason: str, exc: Exception) -> None:
        log_event(
            log, "tx_failed", level=logging.ERROR,
            pair=pair.key, side=side.value, reason=reason, error=str(exc), error_type=type(exc).__name__,
        )
        if self.rich_metrics:
            self.rich_metrics.orders_failed.labels(pair=pair.key, side=side.value, reason=reason).inc()

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    async def process_pair(self, pair: PairConfig, result: PassResult) -> None:
        self._side_status = {k: v for k, v in self._side_status.items() if k[0] != pair.key}
        result.fills_detected += len(await self.check_order_status(pair))
        await self.handle_flip_failure(pair)
        result.orders_placed += await self.quote_pair(pair)

    async def run_pass(self) -> PassResult:
        result = PassResult()
        for pair in self.pairs:
            if self._stop.is_set():
                result.stopped_early = True
                break
            try:
                await self.process_pair(pair, result)
            except StatePersistenceError:
                raise
            except Exception as exc:
                result.errors += 1
                log_event(
                    log, "pair_step_error", level=logging.ERROR,
                    pair=pair.key, error=str(exc), error_type=type(exc).__name__,
                )
                if self.rich_metrics:
                    self.rich_metrics.pair_step_errors.labels(pair=pair.key).inc()
            result.pairs_processed += 1

        await self._update_block()
        result.budget_exhausted = not self.budget.check_tx_budget(self.state).allowed
        return result

    async def _update_block(self) -> None:
        try:
            block = await self.dex.block_number()
        except Exception as exc:
            log_event(log, "block_number_error", level=logging.WARNING, error=str(exc))
            return
        self.store.update_last_block(self.state, block)

    async def run(self) -> int:
        """Run until stopped. Returns a process exit code."""
        try:
            if not await self.bootstrap():
                return 1
            while not self._stop.is_set():
                result = await self.run_pass()
                log_event(
                    log, "pass_complete",
                    pairs=result.pairs_processed, fills=result.fills_detected,
                    placed=result.orders_placed, errors=result.errors,
                )
                if result.budget_exhausted and not self._stop.is_set():
                    self._set_status(EngineStatus.COOLDOWN)
                    log_event(
                        log, "engine_cooldown", level=logging.WARNING,
                        reason="budget_exhausted", sleep_sec=self.config.budget_cooldown_sec,
                    )
                    await self._sleep(self.config.budget_cooldown_sec)
                    if not self._stop.is_set():
                        self._set_status(EngineStatus.RUNNING)
                else:
                    await self._sleep(self.config.loop_interval_sec)
        except StatePersistenceError as exc:
            log_event(log, "engine_fatal", level=logging.CRITICAL, error=str(exc))
            return 1
        finally:
            self._shutdown()
        return 0

    async def run_single_cycle(self) -> Optional[PassResult]:
        """Bootstrap, run exactly one pass, then stop. None if bootstrap failed."""
        try:
            if not await self.bootstrap():
                return None
            return await self.run_pass()
        finally:
            self._shutdown()

    def _shutdown(self) -> None:
        if self.state is not None:
            try:
                self.store.save(self.state)
            except StatePersistenceError as exc:
                log_event(log, "engine_final_save_failed", level=logging.CRITICAL, error=str(exc))
        self._set_status(EngineStatus.STOPPED)
        log_event(log, "engine_stopped")
