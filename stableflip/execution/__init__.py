"""
Execution package - reconciliation against the chain, inventory checks and cancellation.
"""

from stableflip.execution.cancellation import CancelSummary, cancel_stored_orders
from stableflip.execution.inventory import (
    InventorySnapshot,
    QuoteSizing,
    TokenBalance,
    can_quote_pair,
    fetch_inventory,
    has_flip_buffer,
)
from stableflip.execution.reconciliation_service import (
    FullReconcileResult,
    ReconcileResult,
    ReconciliationService,
)

__all__ = [
    "CancelSummary",
    "cancel_stored_orders",
    "InventorySnapshot",
    "QuoteSizing",
    "TokenBalance",
    "can_quote_pair",
    "fetch_inventory",
    "has_flip_buffer",
    "FullReconcileResult",
    "ReconcileResult",
    "ReconciliationService",
]
