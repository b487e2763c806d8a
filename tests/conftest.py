"""
Pytest configuration shared by unit and E2E tests.
"""

import shutil

import pytest


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end test against a real tmux server"
    )
    config.addinivalue_line(
        "markers", "requires_tmux: mark test as requiring a tmux binary"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tmux tests when tmux is not installed."""
    if shutil.which("tmux"):
        return
    skip = pytest.mark.skip(reason="tmux not installed or not in PATH")
    for item in items:
        if "requires_tmux" in item.keywords:
            item.add_marker(skip)
