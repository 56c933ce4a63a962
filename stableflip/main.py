"""
Entry point wiring all components.

    stableflip            # run continuously
    stableflip --once     # bootstrap plus a single quote pass
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from web3 import Web3

from stableflip.config.config import Settings
from stableflip.config.config_validator import validate_and_log
from stableflip.core.errors import ConfigurationError, StatePersistenceError
from stableflip.core.flip import build_quote_params
from stableflip.core.units import format_units
from stableflip.execution.inventory import fetch_token_balance
from stableflip.execution.reconciliation_service import ReconciliationService
from stableflip.infra.async_execution import ALLOWANCE_THRESHOLD, AsyncDex
from stableflip.infra.dex_client import DexClient
from stableflip.infra.logging_cfg import build_logger, log_event
from stableflip.infra.rpc import DexRpc
from stableflip.infra.tokens import TokenClient
from stableflip.infra.tx_sender import TransactionSender
from stableflip.monitoring.metrics_rich import RichMetrics
from stableflip.orchestrator.quote_orchestrator import OrchestratorConfig, QuoteOrchestrator
from stableflip.risk.budget import BudgetEnforcer
from stableflip.state.state_store import StateStore

log = logging.getLogger("stableflip")


def build_dex(cfg: Settings) -> AsyncDex:
    account = cfg.resolve_signer()
    w3 = Web3(Web3.HTTPProvider(cfg.rpc_url, request_kwargs={"timeout": cfg.http_timeout}))
    sender = TransactionSender(w3, account, cfg.chain_id, receipt_timeout=cfg.receipt_timeout)
    return AsyncDex(
        DexClient(w3, cfg.dex_address, sender),
        TokenClient(w3, sender),
        cfg.tokens,
        rpc=DexRpc(cfg.rpc_url, timeout=cfg.http_timeout),
        timeout=cfg.http_timeout,
    )


def build_orchestrator(
    cfg: Settings,
    dex: AsyncDex,
    store: StateStore,
    rich_metrics: Optional[RichMetrics] = None,
) -> QuoteOrchestrator:
    return QuoteOrchestrator(
        dex=dex,
        store=store,
        budget=BudgetEnforcer(store, cfg.budget),
        reconciler=ReconciliationService(dex, store, rich_metrics=rich_metrics),
        grid=cfg.tick_grid,
        pairs=cfg.enabled_pairs,
        maker_address=dex.maker,
        config=OrchestratorConfig(
            total_spread_bps=cfg.total_spread_bps,
            sizing=cfg.sizing,
            cooldown_sec=cfg.cooldown_sec,
            jitter_sec=cfg.jitter_sec,
            flip_timeout_sec=cfg.flip_timeout_sec,
            loop_interval_sec=cfg.loop_interval_sec,
            budget_cooldown_sec=cfg.budget_cooldown_sec,
        ),
        rich_metrics=rich_metrics,
    )


async def preflight(cfg: Settings, dex: AsyncDex) -> bool:
    """Connectivity, balances, allowances and the quote each pair will get."""
    try:
        block = await dex.block_number()
    except Exception as exc:
        log_event(log, "preflight_rpc_failed", level=logging.CRITICAL, rpc_url=cfg.rpc_url, error=str(exc))
        return False
    log_event(log, "preflight_rpc_ok", rpc_url=cfg.rpc_url, block=block, maker=dex.maker)

    grid = cfg.tick_grid
    for pair in cfg.enabled_pairs:
        for symbol in (pair.base, pair.quote):
            balance = await fetch_token_balance(dex, symbol)
            allowance = await dex.get_allowance(symbol)
            log_event(
                log, "preflight_balance",
                token=symbol,
                wallet=format_units(balance.wallet, balance.decimals),
                dex=format_units(balance.dex, balance.decimals),
                approved=allowance >= ALLOWANCE_THRESHOLD,
            )
        decimals = await dex.get_decimals(pair.base)
        params = build_quote_params(
            grid, pair.base, pair.quote, cfg.total_spread_bps, cfg.sizing.order_units(decimals), decimals
        )
        log_event(
            log, "preflight_strategy",
            pair=pair.key,
            bid=grid.format_tick(params.bid_tick),
            ask=grid.format_tick(params.ask_tick),
            order_size=cfg.order_size,
            min_internal_buffer=cfg.min_internal_buffer,
        )
    return True


async def main(once: bool = False, skip_preflight: bool = False, state_file: Optional[str] = None) -> int:
    try:
        cfg = Settings.load()
    except ConfigurationError as exc:
        build_logger("stableflip", file_path=None).error(f"CONFIG ERROR: {exc}")
        return 1

    build_logger("stableflip", level=getattr(logging, cfg.log_level, logging.INFO), file_path=cfg.log_file)
    log_event(log, "config_loaded", level=logging.DEBUG, **cfg.dump())
    if not validate_and_log(cfg, log):
        log.error("Configuration validation failed, exiting")
        return 1

    rich_metrics = RichMetrics()
    if cfg.metrics_port > 0:
        rich_metrics.serve(cfg.metrics_port)

    dex = build_dex(cfg)
    try:
        if not skip_preflight and not await preflight(cfg, dex):
            return 1
        store = StateStore(state_file or cfg.state_file)
        orchestrator = build_orchestrator(cfg, dex, store, rich_metrics)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, orchestrator.stop)
            except NotImplementedError:
                pass  # Windows

        log_event(log, "startup", pairs=[p.key for p in cfg.enabled_pairs], once=once)
        if once:
            result = await orchestrator.run_single_cycle()
            if result is None:
                return 1
            log_event(
                log, "single_cycle_complete",
                fills=result.fills_detected, placed=result.orders_placed, errors=result.errors,
            )
            return 0
        return await orchestrator.run()
    except StatePersistenceError as exc:
        log_event(log, "engine_fatal", level=logging.CRITICAL, error=str(exc))
        return 1
    finally:
        await dex.close()


def cli(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="stableflip", description="Flip-order market maker for the Tempo DEX")
    parser.add_argument("--once", action="store_true", help="bootstrap and run a single quote pass")
    parser.add_argument("--skip-preflight", action="store_true", help="skip the startup checks")
    parser.add_argument("--state-file", default=None, help="override SF_STATE_FILE")
    args = parser.parse_args(argv)
    try:
        code = asyncio.run(main(once=args.once, skip_preflight=args.skip_preflight, state_file=args.state_file))
    except KeyboardInterrupt:
        print("\nStopped by user")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    cli()
