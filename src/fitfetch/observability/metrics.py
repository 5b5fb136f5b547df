"""
Defines Prometheus metrics for the image acquisition pipeline.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (tests reload it) must reuse the collectors that are
# already registered instead of raising on duplicate registration.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        # Counters register under both "<name>" and "<name>_total".
        for key in (name, f"{name}_total"):
            existing = _PROM_REGISTRY._names_to_collectors.get(key)
            if existing is not None:
                return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "strategy_attempts": Counter(
            "fitfetch_strategy_attempts",
            "Acquisition strategy attempts by outcome",
            ["strategy", "outcome"],
        ),
        "extractions": Counter(
            "fitfetch_extractions",
            "Completed extraction calls by outcome",
            ["outcome"],
        ),
        "extraction_latency_seconds": Histogram(
            "fitfetch_extraction_latency_seconds",
            "Wall time of an extraction call including backoff delays",
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def record_attempt(strategy: str, succeeded: bool) -> None:
    METRICS["strategy_attempts"].labels(strategy=strategy, outcome="success" if succeeded else "failure").inc()


def record_extraction(outcome: str, duration_seconds: float) -> None:
    METRICS["extractions"].labels(outcome=outcome).inc()
    METRICS["extraction_latency_seconds"].observe(duration_seconds)
