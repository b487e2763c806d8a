"""
Protocol definitions for external dependencies.

These interfaces allow dependency injection for testing, enabling us to
swap real implementations (tmux via libtmux, git via subprocess, the
claude CLI, ~/.claude/history.jsonl) with in-memory fakes in tests.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TmuxRunner(Protocol):
    """Runs a single tmux command against the default server."""

    def run(self, *args: str) -> str:
        """Run `tmux <args>`.

        Args:
            args: tmux subcommand and its arguments, e.g. ("has-session", "-t", "foo")

        Returns:
            Captured standard output

        Raises:
            CommandError: If tmux exits non-zero (stderr is attached)
        """
        ...


@runtime_checkable
class GitRunner(Protocol):
    """Runs a single git command in an explicit working directory."""

    def run(self, directory: str, *args: str) -> str:
        """Run `git <args>` with `directory` as the working directory.

        Returns:
            Captured standard output

        Raises:
            CommandError: If git exits non-zero (stderr is attached)
        """
        ...


@runtime_checkable
class HistoryReader(Protocol):
    """Source of the raw prompt history (newline-delimited JSON)."""

    def read_history_file(self) -> str:
        """Return the full history text.

        Raises:
            OSError: If the history cannot be read
        """
        ...


@runtime_checkable
class BranchNameGenerator(Protocol):
    """Turns a free-text task description into a raw branch name."""

    def generate_branch_name(self, prompt: str) -> str:
        """Generate a branch name for the prompt.

        No constraint is placed on the returned text; callers sanitize it.

        Raises:
            CommandError: If the underlying generator fails
        """
        ...
