"""
Helpers for validating metric value changes during tests.
"""

from contextlib import contextmanager
from typing import Optional

from prometheus_client import REGISTRY


def sample_value(name: str, **labels: str) -> float:
    """Current value of a registered sample, 0.0 when it has not been emitted yet."""
    value: Optional[float] = REGISTRY.get_sample_value(name, labels or None)
    return value or 0.0


@contextmanager
def metric_delta(name: str, expected_delta: float = 1, **labels: str):
    """
    Context manager to validate that a labelled sample changes by ``expected_delta``.

    Usage:
        with metric_delta("fitfetch_extractions_total", outcome="success"):
            await extractor.extract(url)
    """
    initial_value = sample_value(name, **labels)

    yield

    final_value = sample_value(name, **labels)
    actual_delta = final_value - initial_value

    if actual_delta != expected_delta:
        raise AssertionError(
            f"Expected {name}{labels} to change by {expected_delta}, "
            f"but it changed by {actual_delta} "
            f"(from {initial_value} to {final_value})"
        )


@contextmanager
def histogram_observes(name: str, min_observations: int = 1):
    """Context manager to validate that a histogram recorded observations."""
    initial_count = sample_value(f"{name}_count")

    yield

    actual_observations = sample_value(f"{name}_count") - initial_count
    if actual_observations < min_observations:
        raise AssertionError(
            f"Expected at least {min_observations} observations of {name}, but got {actual_observations}"
        )
