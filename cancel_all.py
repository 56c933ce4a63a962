"""Cancel every order stored in the engine state.

Only orders the engine has on record can be cancelled; each cancel spends
daily and hourly-cancel budget. Stop the engine first.

    python cancel_all.py           # asks for confirmation
    python cancel_all.py --yes
"""
import asyncio
import sys

from stableflip.config.config import Settings
from stableflip.execution.cancellation import cancel_stored_orders
from stableflip.infra.logging_cfg import build_logger
from stableflip.main import build_dex
from stableflip.risk.budget import BudgetEnforcer
from stableflip.state.state_store import StateStore, format_state


async def run(auto_confirm: bool) -> int:
    cfg = Settings.load()
    build_logger("stableflip", file_path=cfg.log_file)
    dex = build_dex(cfg)
    try:
        store = StateStore(cfg.state_file)
        state = store.load(dex.maker)
        print("=== Stored state ===")
        print(format_state(state))

        stored = [
            oid for p in state.pairs for oid in (p.bid_order_id, p.ask_order_id) if oid
        ]
        if not stored:
            print("\nNo stored orders. Nothing to do.")
            return 0

        if not auto_confirm:
            confirm = input(f"\nCancel {len(stored)} stored order(s)? Type 'yes' to confirm: ")
            if confirm.strip().lower() != "yes":
                print("Cancelled. No orders were modified.")
                return 0

        summary = await cancel_stored_orders(dex, store, BudgetEnforcer(store, cfg.budget), state, cfg.pairs)
        print(f"\nCancelled: {len(summary.cancelled)}")
        print(f"Already gone: {len(summary.already_gone)}")
        if summary.failed:
            print(f"Failed: {', '.join(summary.failed)}")
        if summary.budget_exhausted:
            print("Stopped early: transaction or cancel budget exhausted")
            return 1
        return 1 if summary.failed else 0
    finally:
        await dex.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(run(auto_confirm="--yes" in sys.argv[1:])))
