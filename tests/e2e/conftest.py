"""
E2E fixtures: a tmux server on a private socket, torn down after each test.
"""

import uuid

import pytest

from yakumo.implementations import RealTmuxRunner
from yakumo.session_layout import SessionLayoutManager


@pytest.fixture
def tmux_socket():
    return f"yakumo-test-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def tmux_runner(tmux_socket):
    runner = RealTmuxRunner(socket_name=tmux_socket)
    yield runner
    try:
        runner.server.kill()
    except Exception:
        pass


@pytest.fixture
def layout_manager(tmux_runner, tmp_path):
    return SessionLayoutManager(runner=tmux_runner, home_directory=str(tmp_path))
