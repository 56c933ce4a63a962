"""
Tick grid math for the Tempo stablecoin DEX.

Prices are expressed as signed integer ticks relative to the peg:

    price = 1 + tick / price_scale

With the default price_scale of 100_000 one tick is 0.1 bp, so one basis
point is 10 ticks. Orders may only rest on ticks that are multiples of the
grid spacing and inside [min_tick, max_tick].

This is a pure calculation module with no side effects. Invalid results are
raised as InvalidTickError, never silently coerced onto the grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional

from stableflip.core.errors import ConfigurationError, FlipConstraintViolation, InvalidTickError

PRICE_SCALE = 100_000
TICK_SPACING = 10
MIN_TICK = -2000
MAX_TICK = 2000
TICKS_PER_BPS = 10
DEFAULT_SPREAD_BPS = 10


@dataclass(frozen=True)
class QuoteTicks:
    """Symmetric quote around the peg."""
    bid_tick: int
    ask_tick: int
    half_spread_ticks: int
    mid_tick: int = 0

    @property
    def spread_ticks(self) -> int:
        return self.ask_tick - self.bid_tick


@dataclass(frozen=True)
class TickGrid:
    """
    Tick grid parameters and the arithmetic on them.

    Construction does not validate, so a misconfigured grid surfaces as an
    InvalidTickError on first use. Call validate() at startup to fail early.
    """
    spacing: int = TICK_SPACING
    min_tick: int = MIN_TICK
    max_tick: int = MAX_TICK
    ticks_per_bps: int = TICKS_PER_BPS
    price_scale: int = PRICE_SCALE

    def validate(self) -> None:
        if self.spacing <= 0:
            raise ConfigurationError(f"tick spacing must be positive, got {self.spacing}")
        if self.ticks_per_bps <= 0:
            raise ConfigurationError(f"ticks_per_bps must be positive, got {self.ticks_per_bps}")
        if self.min_tick >= self.max_tick:
            raise ConfigurationError(
                f"min_tick ({self.min_tick}) must be below max_tick ({self.max_tick})"
            )
        if self.min_tick % self.spacing or self.max_tick % self.spacing:
            raise ConfigurationError(
                f"tick bounds [{self.min_tick}, {self.max_tick}] are not multiples of spacing {self.spacing}"
            )

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def basis_points_to_ticks(self, bps: float) -> float:
        return bps * self.ticks_per_bps

    def ticks_to_basis_points(self, ticks: float) -> float:
        return ticks / self.ticks_per_bps

    def round_to_spacing(self, value: float) -> int:
        """Nearest multiple of the spacing; exact halves round to the even multiple."""
        steps = (Decimal(str(value)) / Decimal(self.spacing)).quantize(
            Decimal(1), rounding=ROUND_HALF_EVEN
        )
        return int(steps) * self.spacing

    def clamp(self, tick: int) -> int:
        return max(self.min_tick, min(self.max_tick, tick))

    def is_valid_tick(self, tick) -> bool:
        if isinstance(tick, bool) or not isinstance(tick, int):
            return False
        return tick % self.spacing == 0 and self.min_tick <= tick <= self.max_tick

    def tick_to_price(self, tick: int) -> float:
        return 1 + tick / self.price_scale

    def format_tick(self, tick: int) -> str:
        bps = self.ticks_to_basis_points(tick)
        return f"tick {tick} ({bps:+.1f} bps, price {self.tick_to_price(tick):.5f})"

    # ------------------------------------------------------------------
    # Quote ticks
    # ------------------------------------------------------------------

    def half_spread_ticks(self, total_spread_bps: float) -> int:
        return self.round_to_spacing(self.basis_points_to_ticks(total_spread_bps / 2))

    def calculate_quote_ticks(self, total_spread_bps: float) -> QuoteTicks:
        """
        Bid and ask ticks for a total spread, centred on the peg (tick 0).

        Raises:
            InvalidTickError: if either tick is not a valid grid tick, e.g.
                when the bounds are not multiples of the spacing.
        """
        half = self.half_spread_ticks(total_spread_bps)
        bid_tick = self.clamp(-half)
        ask_tick = self.clamp(half)
        for tick in (bid_tick, ask_tick):
            if not self.is_valid_tick(tick):
                raise InvalidTickError(
                    tick,
                    f"quote tick {tick} invalid for spread {total_spread_bps} bps "
                    f"(spacing {self.spacing}, bounds [{self.min_tick}, {self.max_tick}])",
                )
        return QuoteTicks(bid_tick=bid_tick, ask_tick=ask_tick, half_spread_ticks=half)

    def calculate_flip_tick(self, tick: int, is_bid: bool, spread_ticks: Optional[int] = None) -> int:
        """
        Flip target a fixed distance away from the order tick.

        The distance defaults to the full spread of a DEFAULT_SPREAD_BPS quote.

        Bids flip upward, asks downward. Near the bounds the clamp can collapse
        the flip onto the order tick, which raises FlipConstraintViolation.
        """
        if spread_ticks is None:
            spread_ticks = 2 * self.half_spread_ticks(DEFAULT_SPREAD_BPS)
        raw = tick + spread_ticks if is_bid else tick - spread_ticks
        flip_tick = self.clamp(self.round_to_spacing(raw))
        if (is_bid and flip_tick <= tick) or (not is_bid and flip_tick >= tick):
            raise FlipConstraintViolation("bid" if is_bid else "ask", tick, flip_tick)
        if not self.is_valid_tick(flip_tick):
            raise InvalidTickError(flip_tick)
        return flip_tick


DEFAULT_GRID = TickGrid()
