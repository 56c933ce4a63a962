"""
Exception taxonomy for the engine.

Fatal errors (configuration, bootstrap, persistence) stop the process.
Tick and flip-constraint violations are raised before any submission and
only skip the affected side for the current cycle. Transport errors from
web3/httpx are not wrapped; they propagate as-is to the pair step.
"""

from __future__ import annotations


class StableFlipError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(StableFlipError):
    """Missing credentials, no enabled pairs, or an incompatible tick grid."""


class BootstrapError(StableFlipError):
    """Pair creation or token approval failed during bootstrap."""


class InvalidTickError(StableFlipError, ValueError):
    """A computed tick is off the spacing grid or outside the tick bounds."""

    def __init__(self, tick, message: str | None = None) -> None:
        self.tick = tick
        super().__init__(message or f"invalid tick {tick}")


class FlipConstraintViolation(StableFlipError, ValueError):
    """A flip tick is on the wrong side of its order tick."""

    def __init__(self, side: str, tick: int, flip_tick: int) -> None:
        self.side = side
        self.tick = tick
        self.flip_tick = flip_tick
        relation = ">" if side == "bid" else "<"
        super().__init__(
            f"{side} flip tick must be {relation} tick (tick={tick}, flip_tick={flip_tick})"
        )


class TransactionFailed(StableFlipError):
    """Transaction was mined but reverted."""

    def __init__(self, tx_hash: str, message: str = "transaction reverted") -> None:
        self.tx_hash = tx_hash
        super().__init__(f"{message}: {tx_hash}")


class StatePersistenceError(StableFlipError):
    """The state file could not be written."""
