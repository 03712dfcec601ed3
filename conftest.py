"""Pytest configuration for the Soft Delete Toolkit."""

import pytest

from softdelete_toolkit.config import set_config


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "integration: test runs against SQLite")


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the global configuration from leaking between tests."""
    set_config(None)
    yield
    set_config(None)
