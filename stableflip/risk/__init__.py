"""
Risk package - transaction budget enforcement.
"""

from stableflip.risk.budget import BudgetCheck, BudgetConfig, BudgetEnforcer

__all__ = ["BudgetCheck", "BudgetConfig", "BudgetEnforcer"]
