"""
Prometheus metrics for the market maker.

Organized into: execution, fills/flips, budget, operational.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class RichMetrics:
    """Metrics for quote lifecycle observability."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        reg = registry or CollectorRegistry()
        self.registry = reg

        # === Execution Metrics ===
        self.orders_submitted = Counter(
            'orders_submitted_total',
            'Flip orders submitted to the DEX',
            labelnames=['pair', 'side'],
            registry=reg
        )
        self.orders_failed = Counter(
            'orders_failed_total',
            'Flip order submissions that failed or reverted',
            labelnames=['pair', 'side', 'reason'],
            registry=reg
        )
        self.orders_cancelled = Counter(
            'orders_cancelled_total',
            'Orders cancelled',
            labelnames=['pair'],
            registry=reg
        )
        self.submit_latency_ms = Histogram(
            'submit_latency_ms',
            'Time from submission to mined receipt (milliseconds)',
            labelnames=['pair'],
            buckets=[250, 500, 1000, 2000, 5000, 10000, 30000, 60000],
            registry=reg
        )

        # === Fill / Flip Metrics ===
        self.orders_filled = Counter(
            'orders_filled_total',
            'Stored orders detected as filled',
            labelnames=['pair', 'side'],
            registry=reg
        )
        self.stale_orders_cleared = Counter(
            'stale_orders_cleared_total',
            'Stored order ids cleared by reconciliation',
            labelnames=['pair'],
            registry=reg
        )
        self.flip_failures = Counter(
            'flip_failures_total',
            'Flip successors that were not posted',
            labelnames=['pair', 'side', 'reason'],
            registry=reg
        )

        # === Budget Metrics ===
        self.tx_budget_daily_remaining = Gauge(
            'tx_budget_daily_remaining',
            'Transactions left in the daily budget',
            registry=reg
        )

        # === Operational Metrics ===
        self.engine_status = Gauge(
            'engine_status',
            'Engine state (0=idle 1=bootstrap 2=running 3=cooldown 4=stopped)',
            registry=reg
        )
        self.pair_step_errors = Counter(
            'pair_step_errors_total',
            'Pair steps abandoned because of an error',
            labelnames=['pair'],
            registry=reg
        )

    def serve(self, port: int) -> None:
        start_http_server(port, registry=self.registry)
