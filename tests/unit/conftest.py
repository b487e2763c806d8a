"""
Unit test configuration for Yakumo.

Keeps tests independent of the developer's tmux client and config file.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Hide the caller's tmux pane and point config at an empty temp file."""
    from yakumo import config

    monkeypatch.delenv("TMUX_PANE", raising=False)
    monkeypatch.delenv("YAKUMO_TMUX_SOCKET", raising=False)
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "yakumo-config.yaml")
    yield


@pytest.fixture(autouse=True)
def reset_yakumo_logger():
    """Undo handlers the CLI installs so caplog sees yakumo records."""
    yield
    logger = logging.getLogger("yakumo")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
