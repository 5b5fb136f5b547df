"""Logging and metrics for Fitfetch."""

from .logging import configure_logging
from .metrics import METRICS, record_attempt, record_extraction

__all__ = ["METRICS", "configure_logging", "record_attempt", "record_extraction"]
