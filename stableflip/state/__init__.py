"""
State package - persisted engine state and its atomic JSON store.
"""

from stableflip.state.models import EngineState, PairState, SideStatus, TxCounters, SCHEMA_VERSION
from stableflip.state.state_store import StateStore, format_state

__all__ = [
    "EngineState",
    "PairState",
    "SideStatus",
    "TxCounters",
    "SCHEMA_VERSION",
    "StateStore",
    "format_state",
]
