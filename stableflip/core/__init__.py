"""
Core package - pure tick math, flip-order invariants and shared utilities.
"""

from stableflip.core.errors import (
    BootstrapError,
    ConfigurationError,
    FlipConstraintViolation,
    InvalidTickError,
    StableFlipError,
    StatePersistenceError,
    TransactionFailed,
)
from stableflip.core.flip import FlipOrder, QuoteParams, Side, assert_flip_constraints, build_quote_params
from stableflip.core.ticks import DEFAULT_GRID, QuoteTicks, TickGrid

__all__ = [
    "BootstrapError",
    "ConfigurationError",
    "FlipConstraintViolation",
    "InvalidTickError",
    "StableFlipError",
    "StatePersistenceError",
    "TransactionFailed",
    "FlipOrder",
    "QuoteParams",
    "Side",
    "assert_flip_constraints",
    "build_quote_params",
    "DEFAULT_GRID",
    "QuoteTicks",
    "TickGrid",
]
