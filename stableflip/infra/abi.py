"""
Contract ABIs for the Tempo stablecoin DEX and TIP-20 tokens.

Only the entries the engine calls are listed.
"""

from __future__ import annotations

DEX_ABI = [
    {
        "type": "function",
        "name": "getOrder",
        "stateMutability": "view",
        "inputs": [{"name": "orderId", "type": "uint128"}],
        "outputs": [
            {
                "name": "order",
                "type": "tuple",
                "components": [
                    {"name": "orderId", "type": "uint128"},
                    {"name": "maker", "type": "address"},
                    {"name": "bookKey", "type": "address"},
                    {"name": "isBid", "type": "bool"},
                    {"name": "tick", "type": "int16"},
                    {"name": "amount", "type": "uint128"},
                    {"name": "remaining", "type": "uint128"},
                    {"name": "prev", "type": "uint128"},
                    {"name": "next", "type": "uint128"},
                    {"name": "isFlip", "type": "bool"},
                    {"name": "flipTick", "type": "int16"},
                ],
            }
        ],
    },
    {
        "type": "function",
        "name": "placeFlip",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint128"},
            {"name": "isBid", "type": "bool"},
            {"name": "tick", "type": "int16"},
            {"name": "flipTick", "type": "int16"},
        ],
        "outputs": [{"name": "orderId", "type": "uint128"}],
    },
    {
        "type": "function",
        "name": "cancel",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "orderId", "type": "uint128"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [
            {"name": "user", "type": "address"},
            {"name": "token", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint128"}],
    },
    {
        "type": "function",
        "name": "createPair",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "base", "type": "address"}],
        "outputs": [{"name": "key", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "getTickLevel",
        "stateMutability": "view",
        "inputs": [
            {"name": "base", "type": "address"},
            {"name": "tick", "type": "int16"},
            {"name": "isBid", "type": "bool"},
        ],
        "outputs": [
            {"name": "head", "type": "uint128"},
            {"name": "tail", "type": "uint128"},
            {"name": "totalLiquidity", "type": "uint128"},
        ],
    },
    {
        "type": "event",
        "name": "FlipOrderPlaced",
        "anonymous": False,
        "inputs": [
            {"name": "orderId", "type": "uint128", "indexed": True},
            {"name": "maker", "type": "address", "indexed": True},
            {"name": "token", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint128", "indexed": False},
            {"name": "isBid", "type": "bool", "indexed": False},
            {"name": "tick", "type": "int16", "indexed": False},
            {"name": "flipTick", "type": "int16", "indexed": False},
        ],
    },
    {"type": "error", "name": "OrderDoesNotExist", "inputs": []},
]

TIP20_ABI = [
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "allowance",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]
