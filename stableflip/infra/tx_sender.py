"""
Transaction signing and submission for contract calls.

Blocking; called from the AsyncDex thread pool. Submissions are serialized
per sender so two in-flight transactions never pick the same pending nonce.
Submissions are never retried here: a timed-out send may still be mined.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from stableflip.core.errors import TransactionFailed


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: int
    block_number: int
    gas_used: int
    raw: Any = None

    @property
    def success(self) -> bool:
        return self.status == 1


def _as_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if hasattr(value, "hex"):
        text = str(value.hex())
        return text if text.startswith("0x") else "0x" + text
    return str(value)


def receipt_status(receipt: Any) -> int:
    if receipt is None:
        return 0
    raw = receipt.get("status") if isinstance(receipt, dict) else getattr(receipt, "status", None)
    if raw is None:
        return 0
    if isinstance(raw, str):
        return int(raw, 16) if raw.startswith("0x") else int(raw)
    return int(raw)


class TransactionSender:
    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        chain_id: int,
        receipt_timeout: float = 60.0,
        gas_multiplier: float = 1.2,
    ) -> None:
        self.w3 = w3
        self.account = account
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.gas_multiplier = gas_multiplier
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        return self.account.address

    def send(self, fn) -> TxReceipt:
        """
        Sign and submit a contract function call, then wait for its receipt.

        Raises:
            TransactionFailed: the transaction was mined but reverted.
        """
        with self._lock:
            nonce = int(self.w3.eth.get_transaction_count(self.address, "pending"))
            gas_price = max(1, int(self.w3.eth.gas_price))
            tx = fn.build_transaction(
                {
                    "from": self.address,
                    "nonce": nonce,
                    "chainId": int(self.chain_id),
                    "gasPrice": gas_price,
                }
            )
            gas_limit = int(tx.get("gas", 0) or 0)
            if gas_limit <= 0:
                gas_limit = int(self.w3.eth.estimate_gas(tx))
            tx["gas"] = max(21_000, int(gas_limit * self.gas_multiplier))

            signed = Account.sign_transaction(tx, self.account.key)
            raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
            if raw_tx is None:
                raise RuntimeError("unable to access signed raw transaction")
            tx_hash = self.w3.eth.send_raw_transaction(raw_tx)

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        result = TxReceipt(
            tx_hash=_as_hex(tx_hash),
            status=receipt_status(receipt),
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            raw=receipt,
        )
        if not result.success:
            raise TransactionFailed(result.tx_hash)
        return result

