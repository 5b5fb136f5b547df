"""
Test configuration for Fitfetch.
"""

import pytest

from fitfetch.config import Config
from tests.helpers.fakes import FIXED_NOW, MutableClock, RecordingSleep


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "network: Tests requiring network access")


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()
