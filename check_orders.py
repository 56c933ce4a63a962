"""Show stored orders, their on-chain status, and token balances."""
import asyncio

from stableflip.config.config import Settings
from stableflip.execution.inventory import fetch_token_balance
from stableflip.infra.logging_cfg import build_logger
from stableflip.main import build_dex
from stableflip.state.state_store import StateStore, format_state


async def run() -> None:
    cfg = Settings.load()
    build_logger("stableflip", file_path=None)
    dex = build_dex(cfg)
    try:
        state = StateStore(cfg.state_file).load(dex.maker)
        print("=== Stored state ===")
        print(format_state(state))

        print("\n=== On-chain status ===")
        for pair in state.pairs:
            for side, oid in (("bid", pair.bid_order_id), ("ask", pair.ask_order_id)):
                if not oid:
                    continue
                order = await dex.get_order(oid)
                if order is None:
                    print(f"  {pair.key} {side} #{oid}: not found (filled or cancelled)")
                else:
                    print(
                        f"  {pair.key} {side} #{oid}: tick={order.tick} flip={order.flip_tick} "
                        f"remaining={order.remaining}/{order.amount}"
                    )

        print("\n=== Balances ===")
        symbols = sorted({s for p in cfg.enabled_pairs for s in (p.base, p.quote)})
        for symbol in symbols:
            print(f"  {(await fetch_token_balance(dex, symbol)).describe()}")
    finally:
        await dex.close()


if __name__ == "__main__":
    asyncio.run(run())
