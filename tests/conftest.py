"""
Pytest configuration for the test suite.

This file is automatically loaded by pytest and applies configuration
to all tests in the tests/ directory.
"""

import os
import sys

# Set SDL_VIDEODRIVER before anything imports pygame to avoid display errors in CI
os.environ.setdefault('SDL_VIDEODRIVER', 'dummy')
os.environ.setdefault('PYGAME_HIDE_SUPPORT_PROMPT', '1')

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from config import Config, NetworkParams


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def config():
    """Create a test configuration with a fixed seed."""
    cfg = Config()
    cfg.SEED = 1234
    return cfg


@pytest.fixture
def small_params():
    """The smallest interesting architecture."""
    return NetworkParams(m=2, k=2, n=1, lr=0.01, steps=5)


@pytest.fixture(autouse=True)
def reset_shared_tooltip():
    """Leave the process-wide tooltip hidden between tests."""
    from mlpviz.visualizer.tooltip import get_tooltip_coordinator
    get_tooltip_coordinator().on_leave()
    yield
    get_tooltip_coordinator().on_leave()
