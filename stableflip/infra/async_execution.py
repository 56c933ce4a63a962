"""
Async facade over the blocking web3 clients using a shared thread pool.

Reads run with a timeout and bounded, jittered retries. Writes (order
placement, cancels, approvals, pair creation) run once and without an
asyncio timeout: an abandoned await would not stop a signed transaction
from being mined, and a retry could spend budget twice.

Token symbols are resolved to addresses here so the engine only deals in
symbols.
"""

from __future__ import annotations

import asyncio
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from web3.exceptions import ContractCustomError, ContractLogicError

from stableflip.core.errors import ConfigurationError
from stableflip.core.flip import FlipOrder
from stableflip.core.units import MAX_UINT256
from stableflip.infra.dex_client import CancelResult, DexClient, OrderRecord, PlacementResult
from stableflip.infra.logging_cfg import log_event
from stableflip.infra.rpc import DexRpc
from stableflip.infra.tokens import TokenClient

log = logging.getLogger("stableflip")

# re-approve once the remaining allowance drops below half of max
ALLOWANCE_THRESHOLD = MAX_UINT256 // 2


class AsyncDex:
    def __init__(
        self,
        dex: DexClient,
        tokens: TokenClient,
        token_addresses: Dict[str, str],
        rpc: Optional[DexRpc] = None,
        timeout: float = 10.0,
        max_workers: int = 4,
    ) -> None:
        self._dex = dex
        self._tokens = tokens
        self._rpc = rpc
        self._addresses = dict(token_addresses)
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dex-exec")

    @property
    def maker(self) -> str:
        return self._dex.maker

    def address_of(self, symbol: str) -> str:
        try:
            return self._addresses[symbol]
        except KeyError:
            raise ConfigurationError(f"unknown token symbol: {symbol}") from None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def block_number(self) -> int:
        return await self._read(self._dex.block_number)

    async def get_order(self, order_id: int | str) -> Optional[OrderRecord]:
        return await self._read(lambda: self._dex.get_order(int(order_id)))

    async def get_decimals(self, symbol: str) -> int:
        address = self.address_of(symbol)
        return await self._read(lambda: self._tokens.decimals(address))

    async def get_wallet_balance(self, symbol: str) -> int:
        address = self.address_of(symbol)
        return await self._read(lambda: self._tokens.balance_of(address, self.maker))

    async def get_dex_balance(self, symbol: str) -> int:
        address = self.address_of(symbol)
        return await self._read(lambda: self._dex.get_dex_balance(address))

    async def get_allowance(self, symbol: str) -> int:
        address = self.address_of(symbol)
        return await self._read(lambda: self._tokens.allowance(address, self.maker, self._dex.address))

    async def find_maker_orders(self, symbol: str) -> List[OrderRecord]:
        """Best-effort listing of the maker's open orders; empty when the node lacks dex_getOrders."""
        if self._rpc is None:
            return []
        return await self._rpc.get_maker_orders(self.maker, self.address_of(symbol))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def place_flip_order(self, order: FlipOrder) -> PlacementResult:
        address = self.address_of(order.base)
        return await self._write(
            lambda: self._dex.place_flip_order(address, order.amount, order.is_bid, order.tick, order.flip_tick)
        )

    async def cancel_order(self, order_id: int | str) -> CancelResult:
        return await self._write(lambda: self._dex.cancel_order(int(order_id)))

    async def ensure_allowance(self, symbol: str) -> bool:
        """Approve the DEX for max spend when needed. True if an approval was sent."""
        allowance = await self.get_allowance(symbol)
        if allowance >= ALLOWANCE_THRESHOLD:
            return False
        address = self.address_of(symbol)
        receipt = await self._write(lambda: self._tokens.approve(address, self._dex.address, MAX_UINT256))
        log_event(log, "allowance_approved", token=symbol, tx_hash=receipt.tx_hash)
        return True

    async def ensure_pair_exists(self, base_symbol: str) -> bool:
        """Create the base/pathUSD book when missing. True if it was created."""
        address = self.address_of(base_symbol)
        if await self._read(lambda: self._dex.pair_exists(address)):
            return False
        try:
            receipt = await self._write(lambda: self._dex.create_pair(address))
        except (ContractLogicError, ContractCustomError):
            # lost a race with another creator
            if await self._read(lambda: self._dex.pair_exists(address)):
                return False
            raise
        log_event(log, "pair_created", base=base_symbol, tx_hash=receipt.tx_hash)
        return True

    async def close(self, wait: bool = True) -> None:
        if self._rpc is not None:
            await self._rpc.close()
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Executor plumbing
    # ------------------------------------------------------------------

    async def _read(self, fn: Callable[[], Any], retries: int = 2) -> Any:
        loop = asyncio.get_running_loop()
        backoff = 0.2
        for attempt in range(retries + 1):
            try:
                return await asyncio.wait_for(loop.run_in_executor(self._executor, fn), timeout=self._timeout)
            except (ContractLogicError, ContractCustomError):
                raise  # deterministic revert, retrying cannot help
            except Exception:
                if attempt >= retries:
                    raise
                await asyncio.sleep(backoff + random.uniform(0, backoff * 0.5))
                backoff *= 2

    async def _write(self, fn: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn)
