"""
Flip order model.

A flip order is a resting limit order that, once fully filled, is replaced
by the exchange with an order on the opposite side at its flip tick, funded
from the maker's internal DEX balance. The exchange rejects a flip tick on
the wrong side of the order tick, so every (tick, flip_tick) pair is checked
here before anything is submitted.

The quote is self-referential: the bid flips to the ask tick and the ask
flips to the bid tick, so a filled side re-creates the other side of the
same spread. If the internal balance does not cover the successor at fill
time, the exchange drops it silently; the orchestrator detects that after
the fact.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stableflip.core.errors import FlipConstraintViolation, InvalidTickError
from stableflip.core.ticks import TickGrid


class Side(str, Enum):
    BID = "bid"
    ASK = "ask"

    @property
    def is_bid(self) -> bool:
        return self is Side.BID

    @property
    def opposite(self) -> "Side":
        return Side.ASK if self is Side.BID else Side.BID


def assert_flip_constraints(side: Side, tick: int, flip_tick: int) -> None:
    """Bid flips must sit strictly above the tick, ask flips strictly below."""
    if side is Side.BID and not flip_tick > tick:
        raise FlipConstraintViolation(side.value, tick, flip_tick)
    if side is Side.ASK and not flip_tick < tick:
        raise FlipConstraintViolation(side.value, tick, flip_tick)


@dataclass(frozen=True)
class FlipOrder:
    """A validated flip order, ready for submission."""
    base: str
    side: Side
    amount: int
    tick: int
    flip_tick: int
    grid: Optional[TickGrid] = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"order amount must be positive, got {self.amount}")
        if self.grid is not None:
            for t in (self.tick, self.flip_tick):
                if not self.grid.is_valid_tick(t):
                    raise InvalidTickError(t)
        assert_flip_constraints(self.side, self.tick, self.flip_tick)

    @property
    def is_bid(self) -> bool:
        return self.side.is_bid


@dataclass(frozen=True)
class QuoteParams:
    """Per-cycle quote for one pair. Recomputed every cycle, never persisted."""
    base: str
    quote: str
    bid_tick: int
    ask_tick: int
    bid_flip_tick: int
    ask_flip_tick: int
    order_size: int
    decimals: int
    grid: Optional[TickGrid] = None

    def tick_for(self, side: Side) -> int:
        return self.bid_tick if side is Side.BID else self.ask_tick

    def flip_tick_for(self, side: Side) -> int:
        return self.bid_flip_tick if side is Side.BID else self.ask_flip_tick

    def flip_order(self, side: Side) -> FlipOrder:
        return FlipOrder(
            base=self.base,
            side=side,
            amount=self.order_size,
            tick=self.tick_for(side),
            flip_tick=self.flip_tick_for(side),
            grid=self.grid,
        )


def build_quote_params(
    grid: TickGrid,
    base: str,
    quote: str,
    total_spread_bps: float,
    order_size: int,
    decimals: int,
) -> QuoteParams:
    """
    Build the symmetric quote for a pair.

    Raises:
        InvalidTickError: if the grid cannot express the spread.
        FlipConstraintViolation: if the spread collapses to zero ticks.
    """
    ticks = grid.calculate_quote_ticks(total_spread_bps)
    params = QuoteParams(
        base=base,
        quote=quote,
        bid_tick=ticks.bid_tick,
        ask_tick=ticks.ask_tick,
        bid_flip_tick=ticks.ask_tick,
        ask_flip_tick=ticks.bid_tick,
        order_size=order_size,
        decimals=decimals,
        grid=grid,
    )
    assert_flip_constraints(Side.BID, params.bid_tick, params.bid_flip_tick)
    assert_flip_constraints(Side.ASK, params.ask_tick, params.ask_flip_tick)
    return params
