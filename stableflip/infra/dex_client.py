"""
Blocking web3 client for the Tempo stablecoin DEX contract.

Order lookups distinguish "does not exist" from failure: the exchange
deletes filled and cancelled orders and reverts getOrder with
OrderDoesNotExist, which is returned here as None. Any other error is a
transport or node problem and propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from web3 import Web3
from web3.exceptions import ContractCustomError, ContractLogicError
from web3.logs import DISCARD

from stableflip.infra.abi import DEX_ABI
from stableflip.infra.tx_sender import TransactionSender, TxReceipt

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ORDER_DOES_NOT_EXIST_SELECTOR = "0x" + bytes(Web3.keccak(text="OrderDoesNotExist()")[:4]).hex()


@dataclass(frozen=True)
class OrderRecord:
    """Chain view of a resting order."""
    order_id: int
    maker: str
    base_token: str
    is_bid: bool
    is_flip: bool
    tick: int
    flip_tick: Optional[int]
    amount: int
    remaining: int

    @property
    def is_live(self) -> bool:
        return self.remaining > 0


@dataclass(frozen=True)
class PlacementResult:
    order_id: Optional[int]
    tx_hash: str
    gas_used: int
    block_number: int = 0


@dataclass(frozen=True)
class CancelResult:
    tx_hash: str
    success: bool


def is_order_missing_error(exc: Exception) -> bool:
    """True for the OrderDoesNotExist revert, whichever way the node reports it."""
    if not isinstance(exc, (ContractLogicError, ContractCustomError)):
        return False
    text = str(exc)
    data = getattr(exc, "data", None)
    data_text = data if isinstance(data, str) else ""
    return (
        "OrderDoesNotExist" in text
        or ORDER_DOES_NOT_EXIST_SELECTOR in text
        or data_text.startswith(ORDER_DOES_NOT_EXIST_SELECTOR)
    )


def order_from_call(order_id: int, raw: Any) -> Optional[OrderRecord]:
    """Decode a getOrder result; a zero maker means the slot is empty."""
    (
        _oid, maker, book_key, is_bid, tick, amount, remaining,
        _prev, _next, is_flip, flip_tick,
    ) = raw
    if not maker or str(maker).lower() == ZERO_ADDRESS:
        return None
    return OrderRecord(
        order_id=order_id,
        maker=maker,
        base_token=book_key,
        is_bid=bool(is_bid),
        is_flip=bool(is_flip),
        tick=int(tick),
        flip_tick=int(flip_tick) if is_flip else None,
        amount=int(amount),
        remaining=int(remaining),
    )


class DexClient:
    def __init__(self, w3: Web3, dex_address: str, sender: TransactionSender) -> None:
        self.w3 = w3
        self.sender = sender
        self.contract = w3.eth.contract(address=Web3.to_checksum_address(dex_address), abi=DEX_ABI)

    @property
    def address(self) -> str:
        return self.contract.address

    @property
    def maker(self) -> str:
        return self.sender.address

    def block_number(self) -> int:
        return int(self.w3.eth.block_number)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        try:
            raw = self.contract.functions.getOrder(int(order_id)).call()
        except (ContractLogicError, ContractCustomError) as exc:
            if is_order_missing_error(exc):
                return None
            raise
        return order_from_call(int(order_id), raw)

    def get_dex_balance(self, token_address: str, owner: Optional[str] = None) -> int:
        user = Web3.to_checksum_address(owner or self.maker)
        return int(
            self.contract.functions.balanceOf(user, Web3.to_checksum_address(token_address)).call()
        )

    def pair_exists(self, base_address: str) -> bool:
        """An order book exists when its tick level can be read without a revert."""
        try:
            self.contract.functions.getTickLevel(Web3.to_checksum_address(base_address), 0, True).call()
        except ContractLogicError:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def place_flip_order(
        self,
        token_address: str,
        amount: int,
        is_bid: bool,
        tick: int,
        flip_tick: int,
    ) -> PlacementResult:
        fn = self.contract.functions.placeFlip(
            Web3.to_checksum_address(token_address), int(amount), bool(is_bid), int(tick), int(flip_tick)
        )
        receipt = self.sender.send(fn)
        return PlacementResult(
            order_id=self._placed_order_id(receipt),
            tx_hash=receipt.tx_hash,
            gas_used=receipt.gas_used,
            block_number=receipt.block_number,
        )

    def cancel_order(self, order_id: int) -> CancelResult:
        receipt = self.sender.send(self.contract.functions.cancel(int(order_id)))
        return CancelResult(tx_hash=receipt.tx_hash, success=receipt.success)

    def create_pair(self, base_address: str) -> TxReceipt:
        return self.sender.send(self.contract.functions.createPair(Web3.to_checksum_address(base_address)))

    def _placed_order_id(self, receipt: TxReceipt) -> Optional[int]:
        events = self.contract.events.FlipOrderPlaced().process_receipt(receipt.raw, errors=DISCARD)
        maker = self.maker.lower()
        for ev in events:
            if str(ev["args"]["maker"]).lower() == maker:
                return int(ev["args"]["orderId"])
        return None
