"""
TIP-20 token reads and approvals.

Decimals never change for a deployed token, so they are cached per address
for the life of the process.
"""

from __future__ import annotations

from typing import Dict

from web3 import Web3

from stableflip.core.units import MAX_UINT256
from stableflip.infra.abi import TIP20_ABI
from stableflip.infra.tx_sender import TransactionSender, TxReceipt


class TokenClient:
    def __init__(self, w3: Web3, sender: TransactionSender) -> None:
        self.w3 = w3
        self.sender = sender
        self._decimals: Dict[str, int] = {}

    def _contract(self, token_address: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=TIP20_ABI)

    def decimals(self, token_address: str) -> int:
        key = token_address.lower()
        if key not in self._decimals:
            self._decimals[key] = int(self._contract(token_address).functions.decimals().call())
        return self._decimals[key]

    def balance_of(self, token_address: str, owner: str) -> int:
        return int(
            self._contract(token_address).functions.balanceOf(Web3.to_checksum_address(owner)).call()
        )

    def allowance(self, token_address: str, owner: str, spender: str) -> int:
        return int(
            self._contract(token_address)
            .functions.allowance(Web3.to_checksum_address(owner), Web3.to_checksum_address(spender))
            .call()
        )

    def approve(self, token_address: str, spender: str, amount: int = MAX_UINT256) -> TxReceipt:
        fn = self._contract(token_address).functions.approve(Web3.to_checksum_address(spender), int(amount))
        return self.sender.send(fn)
