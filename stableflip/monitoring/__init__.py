"""
Monitoring package - Prometheus metrics.
"""

from stableflip.monitoring.metrics_rich import RichMetrics

__all__ = ["RichMetrics"]
