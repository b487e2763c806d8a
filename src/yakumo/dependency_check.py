"""
Checks for the external programs yakumo drives.

tmux is mandatory for every session command. The claude CLI is optional
for `open` (no agent is started without it) and mandatory for
`watch-rename`, which needs it to generate branch names.
"""

import os
import shutil
import subprocess
from typing import Optional, Tuple

from .exceptions import ClaudeNotFoundError, TmuxNotFoundError

# (available, resolved path, version string)
ToolStatus = Tuple[bool, Optional[str], Optional[str]]

TMUX_INSTALL_HINT = "install it with `brew install tmux` or `apt install tmux`"
CLAUDE_INSTALL_HINT = "see https://docs.anthropic.com/en/docs/claude-code for setup"


def find_executable(name: str) -> Optional[str]:
    """Resolve a program name (or path) against $PATH."""
    return shutil.which(name)


def _probe_version(path: str, flag: str, timeout: float) -> Optional[str]:
    """First line of `<path> <flag>`, or None if the probe fails."""
    try:
        result = subprocess.run([path, flag], capture_output=True, text=True, timeout=timeout)
    except (subprocess.SubprocessError, OSError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def _check(program: str, version_flag: str, timeout: float) -> ToolStatus:
    path = find_executable(program)
    if path is None:
        return False, None, None
    return True, path, _probe_version(path, version_flag, timeout)


def check_tmux() -> ToolStatus:
    """Whether tmux is installed, where, and which version ("tmux 3.4")."""
    return _check("tmux", "-V", timeout=5)


def check_claude(claude_path: str = "claude") -> ToolStatus:
    """Whether the Claude Code CLI is installed.

    The version looks like "2.0.75 (Claude Code)". A missing version is
    not an error: some wrappers do not support --version.
    """
    return _check(claude_path, "--version", timeout=10)


def require_tmux() -> str:
    """Path of tmux; raises TmuxNotFoundError when it is missing."""
    available, path, _ = check_tmux()
    if not available:
        raise TmuxNotFoundError(f"tmux not found on PATH; {TMUX_INSTALL_HINT}")
    return path


def require_claude(claude_path: str = "claude") -> str:
    """Path of the claude CLI; raises ClaudeNotFoundError when it is missing."""
    available, path, _ = check_claude(claude_path)
    if not available:
        raise ClaudeNotFoundError(f"{claude_path} not found on PATH; {CLAUDE_INSTALL_HINT}")
    return path


def is_inside_tmux() -> bool:
    return bool(os.environ.get("TMUX"))
