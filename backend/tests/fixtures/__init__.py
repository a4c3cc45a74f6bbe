"""Test Fixtures Package

Provides reusable test fixtures for all test modules.

Fixtures:
- fake_browser: in-memory page driver, container and launcher
"""
from tests.fixtures.fake_browser import (
    FakeContainer,
    FakeLauncher,
    FakePage,
    FakeSite,
    fake_launcher,
)

__all__ = [
    "FakeContainer",
    "FakeLauncher",
    "FakePage",
    "FakeSite",
    "fake_launcher",
]
