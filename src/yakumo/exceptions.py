"""
Exception hierarchy for Yakumo.

Absence (a missing session, a prompt that has not shown up yet) is never
an exception; these types are reserved for failures a caller must handle.
"""

from typing import Sequence


class YakumoError(Exception):
    """Base class for all Yakumo errors."""


class CommandError(YakumoError):
    """An external command (tmux, git, claude) exited unsuccessfully."""

    def __init__(self, program: str, args: Sequence[str], stderr: str = ""):
        self.program = program
        self.args_list = list(args)
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"{program} {' '.join(self.args_list)} failed{detail}")


class TmuxNotFoundError(YakumoError):
    """tmux is required but not installed."""


class ClaudeNotFoundError(YakumoError):
    """The Claude Code CLI is required but not installed."""


class LayoutError(YakumoError):
    """A session layout could not be built or rearranged."""


class WorktreeError(YakumoError):
    """A worktree could not be created or removed."""


class RenameError(YakumoError):
    """The branch rename workflow aborted."""


class WatchTimeoutError(RenameError):
    """No qualifying prompt appeared before the watch deadline."""


class HistoryParseError(YakumoError):
    """The prompt history file could not be parsed."""


class InvalidTransitionError(YakumoError):
    """A rename record was asked to move to a status it cannot reach."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"cannot move rename status from {current} to {target}")
