"""
Orchestrator package - quote lifecycle state machine.

This package contains the orchestrator that drives bootstrap, fill
detection, flip verification and re-quoting for every configured pair.
"""

from stableflip.orchestrator.quote_orchestrator import (
    EngineStatus,
    FlipWatch,
    OrchestratorConfig,
    PassResult,
    QuoteOrchestrator,
)

__all__ = [
    "EngineStatus",
    "FlipWatch",
    "OrchestratorConfig",
    "PassResult",
    "QuoteOrchestrator",
]
