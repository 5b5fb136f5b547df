"""Tests for structured logging setup and the duplicate-safe metric factory."""

import json
import logging

import pytest
import structlog

from fitfetch.config import MonitoringConfig
from fitfetch.observability import METRICS, configure_logging
from fitfetch.observability.metrics import Counter


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.mark.unit
def test_file_logging_is_json_with_extraction_id(tmp_path, restore_logging):
    log_file = tmp_path / "logs" / "fitfetch.log"
    configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file)))

    with structlog.contextvars.bound_contextvars(extraction_id="abc123"):
        structlog.get_logger("fitfetch.test").bind(component="Test").info("Strategy failed", strategy="direct_fetch")
    for handler in logging.getLogger().handlers:
        handler.flush()

    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    record = next(r for r in records if r["event"] == "Strategy failed")
    assert record["extraction_id"] == "abc123"
    assert record["component"] == "Test"
    assert record["strategy"] == "direct_fetch"
    assert record["level"] == "info"


@pytest.mark.unit
def test_metric_factory_reuses_registered_collectors():
    again = Counter("fitfetch_strategy_attempts", "duplicate registration", ["strategy", "outcome"])

    assert again is METRICS["strategy_attempts"]


@pytest.mark.unit
def test_long_field_values_are_truncated(tmp_path, restore_logging):
    log_file = tmp_path / "fitfetch.log"
    configure_logging(MonitoringConfig(log_level="INFO", log_file=str(log_file), max_field_length=64))

    data_uri = "data:image/png;base64," + "A" * 5000
    structlog.get_logger("fitfetch.test").info("Relay returned envelope", contents=data_uri, relay="allorigins")
    for handler in logging.getLogger().handlers:
        handler.flush()

    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert record["contents"].startswith("data:image/png;base64,")
    assert record["contents"].endswith(f"...(+{len(data_uri) - 64} chars)")
    assert record["relay"] == "allorigins"


@pytest.mark.unit
def test_third_party_loggers_are_quietened(restore_logging):
    configure_logging(MonitoringConfig(log_level="DEBUG", quiet_loggers=["aiohttp.access"]))

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("aiohttp.access").level == logging.WARNING
