"""Pytest Configuration and Shared Fixtures

This file is automatically loaded by pytest and makes all fixtures available to all tests.
"""
import pytest
import sys
from pathlib import Path

# Add backend to path for imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from tickerstream.config import RecoveryConfig, SourceConfig, ValidationConfig  # noqa: E402

# Shared fixtures
from tests.fixtures.fake_browser import fake_launcher  # noqa: E402,F401


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: Integration tests through the HTTP app or CLI (slower than unit tests)"
    )
    config.addinivalue_line(
        "markers",
        "unit: Unit tests with fakes only (fast)"
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running tests (skip with -m 'not slow')"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def validation_config():
    """Validation budget small enough for fast tests."""
    return ValidationConfig(
        validation_total_budget_ms=300,
        validation_goto_timeout_ms=200,
        invalid_marker_wait_ms=50,
        selector_sprint_wait_ms=100,
    )


@pytest.fixture
def recovery_config():
    """Near-zero backoff with the production number of attempts."""
    return RecoveryConfig(backoff_delays_ms=[1, 1, 1, 1])


@pytest.fixture
def source_config():
    return SourceConfig()
