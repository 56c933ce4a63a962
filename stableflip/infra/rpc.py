"""
Minimal async JSON-RPC client for Tempo-specific node methods.

dex_getOrders is not part of the standard Ethereum API and not every node
serves it. The lookup is best-effort: any failed call yields an empty
result, and malformed order entries are skipped.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, List, Optional

import httpx

from stableflip.infra.dex_client import OrderRecord

log = logging.getLogger("stableflip")


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(f"json-rpc error {code}: {message}")


class DexRpc:
    def __init__(self, rpc_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.rpc_url = rpc_url
        # a shared client is not closed by close()
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(http2=True, timeout=timeout)
            self._owns_client = True
        self._ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def get_maker_orders(self, maker: str, base_token: Optional[str] = None) -> List[OrderRecord]:
        """Open orders of maker, optionally filtered to one order book."""
        query: dict[str, Any] = {"maker": maker}
        if base_token:
            query["baseToken"] = base_token
        try:
            result = await self._request("dex_getOrders", [query])
        except JsonRpcError as exc:
            log.debug(f"dex_getOrders unavailable: {exc}")
            return []
        except (httpx.HTTPError, ValueError) as exc:
            log.warning(f"dex_getOrders failed: {type(exc).__name__}: {exc}")
            return []
        if not isinstance(result, list):
            return []
        orders = []
        for raw in result:
            try:
                orders.append(_order_from_rpc(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                log.warning(f"dex_getOrders: skipping malformed order {raw!r}: {exc!r}")
        return orders

    async def fund_address(self, address: str) -> Any:
        """Ask a testnet node to credit address from its faucet. Errors raise."""
        return await self._request("tempo_fundAddress", [address])

    async def _request(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        resp = await self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if isinstance(data, dict) and data.get("error"):
            err = data["error"]
            raise JsonRpcError(int(err.get("code", 0)), str(err.get("message", "")))
        return data.get("result") if isinstance(data, dict) else None


def _int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _order_from_rpc(raw: dict) -> OrderRecord:
    is_flip = bool(raw.get("isFlip"))
    return OrderRecord(
        order_id=_int(raw["orderId"]),
        maker=raw.get("maker", ""),
        base_token=raw.get("baseToken") or raw.get("bookKey", ""),
        is_bid=bool(raw.get("isBid")),
        is_flip=is_flip,
        tick=_int(raw["tick"]),
        flip_tick=_int(raw["flipTick"]) if is_flip and raw.get("flipTick") is not None else None,
        amount=_int(raw.get("amount", 0)),
        remaining=_int(raw.get("remaining", 0)),
    )
