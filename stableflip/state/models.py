"""
Persisted engine state.

One EngineState document per maker address. Order ids are uint128 on chain
and are kept as decimal strings so the JSON stays exact.

A non-null order id means the engine believes that order is live; the
belief is confirmed or cleared by reconciliation every cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from stableflip.core.flip import Side

SCHEMA_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


def from_iso(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class SideStatus(Enum):
    """Lifecycle of one side of a pair within a pass."""
    EMPTY = auto()                 # no stored order id
    PENDING_CONFIRMATION = auto()  # budget reserved, submission in flight
    OPEN = auto()                  # stored order id, believed live
    FILLED = auto()                # found gone or fully filled this pass


@dataclass
class PairState:
    base: str
    quote: str
    bid_order_id: Optional[str] = None
    ask_order_id: Optional[str] = None
    last_bid_tick: Optional[int] = None
    last_ask_tick: Optional[int] = None
    last_bid_flip_tick: Optional[int] = None
    last_ask_flip_tick: Optional[int] = None
    updated_at: str = ""

    @property
    def key(self) -> str:
        return f"{self.base}/{self.quote}"

    def order_id(self, side: Side) -> Optional[str]:
        return self.bid_order_id if side is Side.BID else self.ask_order_id

    def last_tick(self, side: Side) -> Optional[int]:
        return self.last_bid_tick if side is Side.BID else self.last_ask_tick

    def last_flip_tick(self, side: Side) -> Optional[int]:
        return self.last_bid_flip_tick if side is Side.BID else self.last_ask_flip_tick

    def side_status(self, side: Side) -> SideStatus:
        return SideStatus.OPEN if self.order_id(side) else SideStatus.EMPTY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "quote": self.quote,
            "bid_order_id": self.bid_order_id,
            "ask_order_id": self.ask_order_id,
            "last_bid_tick": self.last_bid_tick,
            "last_ask_tick": self.last_ask_tick,
            "last_bid_flip_tick": self.last_bid_flip_tick,
            "last_ask_flip_tick": self.last_ask_flip_tick,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PairState":
        def _id(raw: Any) -> Optional[str]:
            return None if raw is None else str(raw)

        return cls(
            base=data["base"],
            quote=data["quote"],
            bid_order_id=_id(data.get("bid_order_id")),
            ask_order_id=_id(data.get("ask_order_id")),
            last_bid_tick=data.get("last_bid_tick"),
            last_ask_tick=data.get("last_ask_tick"),
            last_bid_flip_tick=data.get("last_bid_flip_tick"),
            last_ask_flip_tick=data.get("last_ask_flip_tick"),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class TxCounters:
    daily_tx_count: int = 0
    daily_reset_at: str = ""
    hourly_cancel_count: int = 0
    hourly_reset_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily_tx_count": self.daily_tx_count,
            "daily_reset_at": self.daily_reset_at,
            "hourly_cancel_count": self.hourly_cancel_count,
            "hourly_reset_at": self.hourly_reset_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TxCounters":
        return cls(
            daily_tx_count=int(data.get("daily_tx_count", 0)),
            daily_reset_at=data.get("daily_reset_at", ""),
            hourly_cancel_count=int(data.get("hourly_cancel_count", 0)),
            hourly_reset_at=data.get("hourly_reset_at", ""),
        )


@dataclass
class EngineState:
    maker_address: str
    schema_version: int = SCHEMA_VERSION
    pairs: List[PairState] = field(default_factory=list)
    last_processed_block: int = 0
    tx_counters: TxCounters = field(default_factory=TxCounters)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def fresh(cls, maker_address: str, now: datetime) -> "EngineState":
        stamp = to_iso(now)
        return cls(
            maker_address=maker_address,
            tx_counters=TxCounters(daily_reset_at=stamp, hourly_reset_at=stamp),
            created_at=stamp,
            updated_at=stamp,
        )

    def find_pair(self, base: str, quote: str) -> Optional[PairState]:
        for pair in self.pairs:
            if pair.base == base and pair.quote == quote:
                return pair
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "maker_address": self.maker_address,
            "pairs": [p.to_dict() for p in self.pairs],
            "last_processed_block": self.last_processed_block,
            "tx_counters": self.tx_counters.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineState":
        return cls(
            schema_version=int(data.get("schema_version", 0)),
            maker_address=data["maker_address"],
            pairs=[PairState.from_dict(p) for p in data.get("pairs", [])],
            last_processed_block=int(data.get("last_processed_block", 0)),
            tx_counters=TxCounters.from_dict(data.get("tx_counters", {})),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )
