"""Unit tests for rich metrics."""

from stableflip.monitoring.metrics_rich import RichMetrics


def _value(metrics, name, labels=None):
    return metrics.registry.get_sample_value(name, labels or {})


def test_rich_metrics_counters():
    metrics = RichMetrics()

    metrics.orders_submitted.labels(pair="AlphaUSD/pathUSD", side="bid").inc()
    metrics.orders_submitted.labels(pair="AlphaUSD/pathUSD", side="bid").inc()
    metrics.orders_failed.labels(pair="AlphaUSD/pathUSD", side="ask", reason="reverted").inc()

    assert _value(metrics, "orders_submitted_total", {"pair": "AlphaUSD/pathUSD", "side": "bid"}) == 2
    assert _value(
        metrics, "orders_failed_total", {"pair": "AlphaUSD/pathUSD", "side": "ask", "reason": "reverted"}
    ) == 1


def test_rich_metrics_gauges():
    metrics = RichMetrics()

    metrics.tx_budget_daily_remaining.set(42)
    metrics.engine_status.set(3)

    assert _value(metrics, "tx_budget_daily_remaining") == 42
    assert _value(metrics, "engine_status") == 3


def test_rich_metrics_histograms():
    metrics = RichMetrics()

    metrics.submit_latency_ms.labels(pair="AlphaUSD/pathUSD").observe(420)
    metrics.submit_latency_ms.labels(pair="AlphaUSD/pathUSD").observe(1500)

    assert _value(metrics, "submit_latency_ms_count", {"pair": "AlphaUSD/pathUSD"}) == 2
    assert _value(metrics, "submit_latency_ms_bucket", {"pair": "AlphaUSD/pathUSD", "le": "500.0"}) == 1


def test_registries_are_independent():
    first, second = RichMetrics(), RichMetrics()
    first.pair_step_errors.labels(pair="AlphaUSD/pathUSD").inc()
    assert _value(second, "pair_step_errors_total", {"pair": "AlphaUSD/pathUSD"}) is None
