"""
Pytest configuration and shared fixtures.
"""
import os
import sys

import pytest

# Make the src/ layout importable without installing the package
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from form_agent.browser import BrowserConfig
from form_agent.sessions import SessionStore


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


@pytest.fixture
def store():
    """An empty session store with predictable ids."""
    counter = iter(range(1, 1000))
    return SessionStore(id_factory=lambda: f"session-{next(counter)}")


@pytest.fixture
def browser_config(tmp_path):
    """Browser settings that write screenshots under the test's tmp dir."""
    return BrowserConfig(
        headless=True,
        screenshots_dir=str(tmp_path / "screenshots"),
        selector_timeout=1.0,
    )
