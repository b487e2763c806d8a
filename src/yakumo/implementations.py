"""
Real implementations of protocol interfaces.

These are production implementations that use libtmux for tmux commands
and subprocess for git.
"""

import os
import subprocess
from typing import Optional

import libtmux
from libtmux.exc import LibTmuxException

from .exceptions import CommandError
from .logging_config import get_logger

logger = get_logger("implementations")


class RealTmuxRunner:
    """Production implementation of TmuxRunner using libtmux.

    Every call is forwarded verbatim through `Server.cmd`, so the command
    surface stays exactly the tmux CLI surface. No objects are cached:
    pane and session identity is re-read on every call.
    """

    def __init__(self, socket_name: Optional[str] = None):
        """Initialize with optional socket name for test isolation.

        If no socket_name is provided, checks YAKUMO_TMUX_SOCKET env var.
        """
        self._socket_name = socket_name or os.environ.get("YAKUMO_TMUX_SOCKET")
        self._server: Optional[libtmux.Server] = None

    @property
    def server(self) -> libtmux.Server:
        """Lazy-load the tmux server connection."""
        if self._server is None:
            if self._socket_name:
                self._server = libtmux.Server(socket_name=self._socket_name)
            else:
                self._server = libtmux.Server()
        return self._server

    def run(self, *args: str) -> str:
        try:
            proc = self.server.cmd(*args)
        except LibTmuxException as e:
            raise CommandError("tmux", args, str(e)) from e

        if proc.returncode != 0:
            raise CommandError("tmux", args, "\n".join(proc.stderr))
        logger.debug("tmux %s", " ".join(args))
        return "\n".join(proc.stdout)


class RealGitRunner:
    """Production implementation of GitRunner using subprocess."""

    def __init__(self, git_bin: str = "git", timeout: float = 30.0):
        self.git_bin = git_bin
        self.timeout = timeout

    def run(self, directory: str, *args: str) -> str:
        try:
            result = subprocess.run(
                [self.git_bin, *args],
                cwd=directory,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise CommandError("git", args, str(e)) from e

        if result.returncode != 0:
            raise CommandError("git", args, result.stderr)
        return result.stdout


def current_branch(runner, worktree_path: str) -> str:
    """Return the checked-out branch of a worktree (`symbolic-ref --short HEAD`)."""
    return runner.run(worktree_path, "symbolic-ref", "--short", "HEAD").strip()


def rename_branch(runner, worktree_path: str, old_branch: str, new_branch: str) -> None:
    """Rename a branch inside the given worktree."""
    runner.run(worktree_path, "branch", "-m", old_branch, new_branch)


def git_user_name(runner, repo_path: str) -> str:
    """The configured `user.name` of a repository ("" if unset)."""
    try:
        return runner.run(repo_path, "config", "user.name").strip()
    except CommandError:
        # `git config` exits 1 when the key is simply not set
        return ""


def add_worktree(runner, repo_path: str, worktree_path: str, branch: str) -> None:
    """Create a worktree at worktree_path on a new branch."""
    runner.run(repo_path, "worktree", "add", worktree_path, "-b", branch)


def remove_worktree(runner, repo_path: str, worktree_path: str) -> None:
    runner.run(repo_path, "worktree", "remove", worktree_path)
