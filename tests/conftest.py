"""
Shared fixtures: a temp-file state store, controllable clocks, and an
in-memory DEX that behaves like AsyncDex.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from stableflip.config.pairs import PairConfig
from stableflip.core.flip import FlipOrder
from stableflip.core.units import MAX_UINT256
from stableflip.infra.dex_client import CancelResult, OrderRecord, PlacementResult
from stableflip.state.state_store import StateStore

MAKER = "0x1111111111111111111111111111111111111111"
DECIMALS = 6
ONE = 10 ** DECIMALS


class UtcClock:
    """Wall clock for the state store and budget windows."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class MonotonicClock:
    """Stand-in for time.monotonic in the orchestrator."""

    def __init__(self, start: float = 1000.0):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeDex:
    """In-memory exchange with the AsyncDex surface used by the engine."""

    maker = MAKER

    def __init__(self):
        self.orders: Dict[str, OrderRecord] = {}
        self.decimals: Dict[str, int] = {"AlphaUSD": DECIMALS, "pathUSD": DECIMALS, "BetaUSD": DECIMALS}
        self.wallet: Dict[str, int] = {s: 1_000 * ONE for s in self.decimals}
        self.internal: Dict[str, int] = {s: 1_000 * ONE for s in self.decimals}
        self.maker_orders: List[OrderRecord] = []
        self.placed: List[FlipOrder] = []
        self.cancelled: List[str] = []
        self.pairs_created: List[str] = []
        self.approvals: List[str] = []
        self.block = 5_000
        self.next_id = 100
        self.get_order_error: Optional[Exception] = None
        self.place_error: Optional[Exception] = None
        self.cancel_error: Optional[Exception] = None
        self.pair_error: Optional[Exception] = None
        self.maker_orders_error: Optional[Exception] = None
        self.emit_order_id = True

    # test helpers

    def add_order(self, order_id, is_bid: bool, tick: int, flip_tick: Optional[int] = None,
                  amount: int = 100 * ONE, remaining: Optional[int] = None) -> OrderRecord:
        record = OrderRecord(
            order_id=int(order_id),
            maker=MAKER,
            base_token="AlphaUSD",
            is_bid=is_bid,
            is_flip=flip_tick is not None,
            tick=tick,
            flip_tick=flip_tick,
            amount=amount,
            remaining=amount if remaining is None else remaining,
        )
        self.orders[str(order_id)] = record
        return record

    def fill(self, order_id) -> None:
        self.orders.pop(str(order_id), None)

    # reads

    async def block_number(self) -> int:
        return self.block

    async def get_order(self, order_id):
        if self.get_order_error is not None:
            raise self.get_order_error
        return self.orders.get(str(order_id))

    async def get_decimals(self, symbol: str) -> int:
        return self.decimals[symbol]

    async def get_wallet_balance(self, symbol: str) -> int:
        return self.wallet[symbol]

    async def get_dex_balance(self, symbol: str) -> int:
        return self.internal[symbol]

    async def get_allowance(self, symbol: str) -> int:
        return MAX_UINT256

    async def find_maker_orders(self, symbol: str) -> List[OrderRecord]:
        if self.maker_orders_error is not None:
            raise self.maker_orders_error
        return list(self.maker_orders)

    # writes

    async def ensure_pair_exists(self, base_symbol: str) -> bool:
        if self.pair_error is not None:
            raise self.pair_error
        self.pairs_created.append(base_symbol)
        return False

    async def ensure_allowance(self, symbol: str) -> bool:
        self.approvals.append(symbol)
        return False

    async def place_flip_order(self, order: FlipOrder) -> PlacementResult:
        self.placed.append(order)
        if self.place_error is not None:
            raise self.place_error
        order_id = self.next_id
        self.next_id += 1
        self.add_order(order_id, order.is_bid, order.tick, order.flip_tick, amount=order.amount)
        return PlacementResult(
            order_id=order_id if self.emit_order_id else None,
            tx_hash=f"0x{order_id:064x}",
            gas_used=90_000,
        )

    async def cancel_order(self, order_id) -> CancelResult:
        if self.cancel_error is not None:
            raise self.cancel_error
        self.cancelled.append(str(order_id))
        self.orders.pop(str(order_id), None)
        return CancelResult(tx_hash=f"0x{int(order_id):064x}", success=True)


@pytest.fixture
def utc_clock():
    return UtcClock()


@pytest.fixture
def store(tmp_path, utc_clock):
    return StateStore(tmp_path / "state" / "state.json", clock=utc_clock)


@pytest.fixture
def state(store):
    return store.load(MAKER)


@pytest.fixture
def fake_dex():
    return FakeDex()


@pytest.fixture
def pair():
    return PairConfig(base="AlphaUSD", quote="pathUSD")
