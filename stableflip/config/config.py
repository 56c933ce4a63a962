"""
Environment-driven configuration.

Values come from SF_* environment variables, with a local .env file loaded
first. Semantic checks live in config_validator; load() only fails on
values that cannot be parsed at all.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

from stableflip.config.pairs import PairConfig, load_pair_file, parse_pairs
from stableflip.core.errors import ConfigurationError
from stableflip.core.ticks import DEFAULT_SPREAD_BPS, MAX_TICK, MIN_TICK, PRICE_SCALE, TICK_SPACING, TICKS_PER_BPS, TickGrid
from stableflip.execution.inventory import QuoteSizing
from stableflip.risk.budget import BudgetConfig

DEFAULT_RPC_URL = "https://rpc.testnet.tempo.xyz"
DEFAULT_CHAIN_ID = 42429
DEFAULT_DEX_ADDRESS = "0xdec0000000000000000000000000000000000000"

DEFAULT_TOKENS: Dict[str, str] = {
    "pathUSD": "0x20c0000000000000000000000000000000000000",
    "AlphaUSD": "0x20c0000000000000000000000000000000000001",
    "BetaUSD": "0x20c0000000000000000000000000000000000002",
    "ThetaUSD": "0x20c0000000000000000000000000000000000003",
}


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    chain_id: int
    dex_address: str
    private_key: str | None
    total_spread_bps: float
    order_size: str
    min_internal_buffer: str
    max_tx_per_day: int
    max_cancels_per_hour: int
    cooldown_sec: float
    jitter_sec: float
    flip_timeout_sec: float
    loop_interval_sec: float
    budget_cooldown_sec: float
    tick_spacing: int
    min_tick: int
    max_tick: int
    state_file: str
    log_file: str | None
    log_level: str
    http_timeout: float
    receipt_timeout: float
    metrics_port: int
    pairs_file: str | None = None
    pairs: List[PairConfig] = field(default_factory=list)
    tokens: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TOKENS))

    def dump(self) -> dict:
        """Settings for logging, with the key redacted."""
        data = self.__dict__.copy()
        data["private_key"] = "***" if self.private_key else None
        data["pairs"] = [p.key for p in self.pairs]
        return data

    @property
    def enabled_pairs(self) -> List[PairConfig]:
        return [p for p in self.pairs if p.enabled]

    @property
    def tick_grid(self) -> TickGrid:
        return TickGrid(
            spacing=self.tick_spacing,
            min_tick=self.min_tick,
            max_tick=self.max_tick,
            ticks_per_bps=TICKS_PER_BPS,
            price_scale=PRICE_SCALE,
        )

    @property
    def sizing(self) -> QuoteSizing:
        return QuoteSizing(order_size=self.order_size, min_internal_buffer=self.min_internal_buffer)

    @property
    def budget(self) -> BudgetConfig:
        return BudgetConfig(max_tx_per_day=self.max_tx_per_day, max_cancels_per_hour=self.max_cancels_per_hour)

    @classmethod
    def load(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()

        pairs_file = os.getenv("SF_PAIRS_FILE") or None
        token_overrides, file_pairs = load_pair_file(pairs_file)
        tokens = dict(DEFAULT_TOKENS)
        tokens.update(token_overrides)
        if file_pairs is not None:
            pairs = file_pairs
        else:
            pairs = parse_pairs(os.getenv("SF_PAIRS", "AlphaUSD/pathUSD"))

        return cls(
            rpc_url=os.getenv("SF_RPC_URL", DEFAULT_RPC_URL),
            chain_id=_int_env("SF_CHAIN_ID", DEFAULT_CHAIN_ID),
            dex_address=os.getenv("SF_DEX_ADDRESS", DEFAULT_DEX_ADDRESS),
            private_key=os.getenv("SF_PRIVATE_KEY") or os.getenv("PRIVATE_KEY") or None,
            total_spread_bps=_float_env("SF_TOTAL_SPREAD_BPS", DEFAULT_SPREAD_BPS),
            order_size=os.getenv("SF_ORDER_SIZE", "100"),
            min_internal_buffer=os.getenv("SF_MIN_INTERNAL_BUFFER", "120"),
            max_tx_per_day=_int_env("SF_MAX_TX_PER_DAY", 100),
            max_cancels_per_hour=_int_env("SF_MAX_CANCELS_PER_HOUR", 10),
            cooldown_sec=_float_env("SF_COOLDOWN_SEC", 60.0),
            jitter_sec=_float_env("SF_JITTER_SEC", 5.0),
            flip_timeout_sec=_float_env("SF_FLIP_TIMEOUT_SEC", 10.0),
            loop_interval_sec=_float_env("SF_LOOP_INTERVAL_SEC", 10.0),
            budget_cooldown_sec=_float_env("SF_BUDGET_COOLDOWN_SEC", 3600.0),
            tick_spacing=_int_env("SF_TICK_SPACING", TICK_SPACING),
            min_tick=_int_env("SF_MIN_TICK", MIN_TICK),
            max_tick=_int_env("SF_MAX_TICK", MAX_TICK),
            state_file=os.getenv("SF_STATE_FILE", "state/state.json"),
            log_file=os.getenv("SF_LOG_FILE", "logs/stableflip.log") or None,
            log_level=os.getenv("SF_LOG_LEVEL", "INFO").upper(),
            http_timeout=_float_env("SF_HTTP_TIMEOUT", 10.0),
            receipt_timeout=_float_env("SF_RECEIPT_TIMEOUT", 60.0),
            metrics_port=_int_env("SF_METRICS_PORT", 0),
            pairs_file=pairs_file,
            pairs=pairs,
            tokens=tokens,
        )

    def resolve_signer(self) -> LocalAccount:
        if not self.private_key:
            raise ConfigurationError("Missing credentials: set SF_PRIVATE_KEY")
        try:
            return Account.from_key(self.private_key)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"SF_PRIVATE_KEY is not a valid private key: {exc}") from None
