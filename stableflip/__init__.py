"""
stableflip - flip-order market maker for pegged stablecoin pairs.

Quotes a symmetric bid/ask around the peg on the Tempo stablecoin DEX using
auto-flipping orders, persists order identity across restarts and keeps a
shared transaction budget.
"""

__version__ = "0.1.0"
