"""
Durable JSON state store.

The whole EngineState is rewritten after every mutation: the document is
written to a sibling .tmp file, fsynced, and moved over the real file with
os.replace, so a crash leaves either the old or the new document on disk,
never a torn one. Saves are synchronous; the caller does not continue until
the state is durable.

A file written for another maker address or another schema version is
treated as belonging to a different bot instance and replaced by a fresh
state. There is no migration.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from stableflip.core.errors import StatePersistenceError
from stableflip.core.json_utils import dumps_pretty, loads
from stableflip.infra.logging_cfg import log_event
from stableflip.state.models import SCHEMA_VERSION, EngineState, PairState, to_iso, utc_now

log = logging.getLogger("stableflip")

_PAIR_FIELDS = {
    "bid_order_id",
    "ask_order_id",
    "last_bid_tick",
    "last_ask_tick",
    "last_bid_flip_tick",
    "last_ask_flip_tick",
}


class StateStore:
    def __init__(self, path: str | Path, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.path = Path(path)
        self.tmp = self.path.with_name(self.path.name + ".tmp")
        self._clock = clock or utc_now
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self, maker_address: str) -> EngineState:
        """
        Load the state for maker_address, creating and persisting a fresh
        one when the file is absent, unreadable, or belongs to another
        instance.
        """
        if not self.path.exists():
            log_event(log, "state_created", path=str(self.path), maker=maker_address)
            return self._fresh(maker_address)

        try:
            state = EngineState.from_dict(loads(self.path.read_bytes()))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            aside = self.path.with_name(
                f"{self.path.name}.corrupt-{self.now().strftime('%Y%m%dT%H%M%S')}"
            )
            os.replace(self.path, aside)
            log_event(
                log, "state_reset", level=logging.ERROR,
                reason="unreadable", error=str(exc), moved_to=str(aside),
            )
            return self._fresh(maker_address)

        if state.schema_version != SCHEMA_VERSION:
            log_event(
                log, "state_reset", level=logging.WARNING,
                reason="schema_version", found=state.schema_version, expected=SCHEMA_VERSION,
            )
            return self._fresh(maker_address)

        if state.maker_address.lower() != maker_address.lower():
            log_event(
                log, "state_reset", level=logging.WARNING,
                reason="maker_mismatch", found=state.maker_address, expected=maker_address,
            )
            return self._fresh(maker_address)

        log_event(
            log, "state_loaded",
            pairs=len(state.pairs),
            daily_tx_count=state.tx_counters.daily_tx_count,
            last_processed_block=state.last_processed_block,
        )
        return state

    def save(self, state: EngineState) -> None:
        state.updated_at = to_iso(self.now())
        payload = dumps_pretty(state.to_dict())
        try:
            with open(self.tmp, "wb") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(self.tmp, self.path)
        except OSError as exc:
            log_event(log, "state_save_error", level=logging.CRITICAL, path=str(self.path), error=str(exc))
            raise StatePersistenceError(f"failed to persist state to {self.path}: {exc}") from exc
        log.debug("state_saved")

    def _fresh(self, maker_address: str) -> EngineState:
        state = EngineState.fresh(maker_address, self.now())
        self.save(state)
        return state

    # ------------------------------------------------------------------
    # Pair helpers
    # ------------------------------------------------------------------

    def get_pair_state(self, state: EngineState, base: str, quote: str) -> PairState:
        pair = state.find_pair(base, quote)
        if pair is None:
            pair = PairState(base=base, quote=quote, updated_at=to_iso(self.now()))
            state.pairs.append(pair)
            self.save(state)
        return pair

    def update_pair_orders(self, state: EngineState, base: str, quote: str, **updates) -> PairState:
        """Set any of the order id / tick fields; None clears a field."""
        unknown = set(updates) - _PAIR_FIELDS
        if unknown:
            raise TypeError(f"unknown pair fields: {sorted(unknown)}")
        pair = self.get_pair_state(state, base, quote)
        for name, value in updates.items():
            if name.endswith("_order_id") and value is not None:
                value = str(value)
            setattr(pair, name, value)
        pair.updated_at = to_iso(self.now())
        self.save(state)
        return pair

    def clear_pair_state(self, state: EngineState, base: str, quote: str) -> PairState:
        return self.update_pair_orders(state, base, quote, **{name: None for name in _PAIR_FIELDS})

    def update_last_block(self, state: EngineState, block_number: int) -> bool:
        """Advance last_processed_block; never moves backwards."""
        if block_number <= state.last_processed_block:
            return False
        state.last_processed_block = block_number
        self.save(state)
        return True


def format_state(state: EngineState) -> str:
    counters = state.tx_counters
    lines = [
        f"Maker: {state.maker_address}",
        f"Schema: v{state.schema_version}  Last block: {state.last_processed_block}",
        f"Daily tx: {counters.daily_tx_count} (since {counters.daily_reset_at})",
        f"Hourly cancels: {counters.hourly_cancel_count} (since {counters.hourly_reset_at})",
        f"Updated: {state.updated_at}",
        "Pairs:",
    ]
    for pair in state.pairs:
        lines.append(f"  {pair.key}")
        lines.append(f"    bid: {pair.bid_order_id or '-'} @ {pair.last_bid_tick} -> {pair.last_bid_flip_tick}")
        lines.append(f"    ask: {pair.ask_order_id or '-'} @ {pair.last_ask_tick} -> {pair.last_ask_flip_tick}")
    if not state.pairs:
        lines.append("  (none)")
    return "\n".join(lines)
