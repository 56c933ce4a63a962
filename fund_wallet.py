"""Request testnet faucet funds for the maker wallet, then show balances."""
import asyncio
import sys

import httpx

from stableflip.config.config import Settings
from stableflip.execution.inventory import fetch_token_balance
from stableflip.infra.logging_cfg import build_logger
from stableflip.infra.rpc import DexRpc, JsonRpcError
from stableflip.main import build_dex

FAUCET_DOCS = "https://docs.tempo.xyz/quickstart/faucet"


async def run() -> int:
    cfg = Settings.load()
    build_logger("stableflip", file_path=None)
    maker = cfg.resolve_signer().address

    print(f"Maker:   {maker}")
    print(f"Network: {cfg.rpc_url}\n")

    rpc = DexRpc(cfg.rpc_url, timeout=cfg.http_timeout)
    try:
        result = await rpc.fund_address(maker)
    except (JsonRpcError, httpx.HTTPError) as e:
        print(f"Faucet request failed: {e}")
        print("\nFund the wallet manually:")
        print(f"  1. Open {FAUCET_DOCS}")
        print(f"  2. Request funds for {maker}")
        print("\nExpected tokens:")
        for symbol, address in sorted(cfg.tokens.items()):
            print(f"  - {symbol}: {address}")
        return 1
    finally:
        await rpc.close()
    print(f"Faucet response: {result}")

    dex = build_dex(cfg)
    try:
        print("\n=== Balances ===")
        symbols = sorted({s for p in cfg.enabled_pairs for s in (p.base, p.quote)})
        for symbol in symbols:
            print(f"  {(await fetch_token_balance(dex, symbol)).describe()}")
    finally:
        await dex.close()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
