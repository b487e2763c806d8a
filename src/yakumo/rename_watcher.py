"""
Branch rename watcher.

A new worktree starts on a placeholder branch. The watcher polls Claude
Code's prompt history until the first real prompt typed in that worktree
shows up, asks the name generator for a branch name, renames the branch
with git and, best effort, renames the tmux session to match.

One watcher handles one worktree and returns once: renamed, failed or
timed out. It owns no shared state, so several can run in a thread pool.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .branch_names import branch_with_namespace, sanitize_branch_name, slug_from_branch
from .exceptions import (
    CommandError,
    HistoryParseError,
    InvalidTransitionError,
    RenameError,
    WatchTimeoutError,
)
from .history_reader import HistoryEntry, find_first_prompt, parse_history
from .implementations import rename_branch
from .logging_config import StructuredLogger, get_structured_logger
from .protocols import BranchNameGenerator, GitRunner, HistoryReader
from .session_layout import SessionLayoutManager

LOG_PREFIX = "[branch-rename]"


class RenameStatus(Enum):
    """Lifecycle of one worktree's automatic rename."""

    PENDING = "pending"
    DETECTED = "detected"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS = {
    RenameStatus.PENDING: {RenameStatus.DETECTED, RenameStatus.SKIPPED},
    RenameStatus.DETECTED: {RenameStatus.COMPLETED, RenameStatus.FAILED},
    RenameStatus.COMPLETED: set(),
    RenameStatus.FAILED: set(),
    RenameStatus.SKIPPED: set(),
}


@dataclass
class BranchRenameInfo:
    """Rename status of one worktree, as shown to the operator."""

    worktree_path: str
    original_branch: str
    created_at: int
    status: RenameStatus = RenameStatus.PENDING
    new_branch: str = ""
    first_prompt: str = ""
    session_id: str = ""
    error: str = ""

    def _move_to(self, target: RenameStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, target.value)
        self.status = target

    def mark_detected(self, prompt: str, session_id: str = "") -> None:
        self._move_to(RenameStatus.DETECTED)
        self.first_prompt = prompt
        self.session_id = session_id

    def mark_completed(self, new_branch: str) -> None:
        self._move_to(RenameStatus.COMPLETED)
        self.new_branch = new_branch

    def mark_failed(self, error: str) -> None:
        self._move_to(RenameStatus.FAILED)
        self.error = error

    def mark_skipped(self, reason: str = "") -> None:
        self._move_to(RenameStatus.SKIPPED)
        self.error = reason


@dataclass(frozen=True)
class WatcherConfig:
    """Parameters of one watch. created_at is Unix milliseconds."""

    worktree_path: str
    branch: str
    session_name: str = ""
    created_at: int = 0
    poll_interval: float = 2.0
    timeout: float = 600.0


@dataclass(frozen=True)
class RenameResult:
    new_branch: str
    prompt: str
    session_id: str = ""
    session_renamed: bool = False


class BranchRenameWatcher:
    """Polls prompt history and renames the worktree's branch once."""

    def __init__(
        self,
        config: WatcherConfig,
        reader: HistoryReader,
        generator: BranchNameGenerator,
        git_runner: GitRunner,
        layout_manager: Optional[SessionLayoutManager] = None,
        logger: Optional[StructuredLogger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_detected: Optional[Callable[[str, str], None]] = None,
    ):
        self.config = config
        self.reader = reader
        self.generator = generator
        self.git_runner = git_runner
        self.layout_manager = layout_manager
        self.log = (logger or get_structured_logger("rename_watcher")).with_context(
            path=config.worktree_path
        )
        self._clock = clock
        self._sleep = sleep
        self._on_detected = on_detected

    def run(self) -> RenameResult:
        """Watch until a prompt appears, then rename.

        Raises:
            WatchTimeoutError: No qualifying prompt before the deadline
            RenameError: Name generation or the git rename failed
        """
        cfg = self.config
        self.log.info(
            f"{LOG_PREFIX} started",
            branch=cfg.branch,
            created_at=cfg.created_at,
            timeout=f"{cfg.timeout:g}s",
        )
        deadline = self._clock() + cfg.timeout

        while self._clock() < deadline:
            entry = self._find_prompt()
            if entry is not None:
                self.log.info(f"{LOG_PREFIX} prompt detected", prompt=repr(entry.display))
                if self._on_detected is not None:
                    self._on_detected(entry.display, entry.session_id or "")
                return self._rename(entry)
            self._sleep(cfg.poll_interval)

        self.log.warning(f"{LOG_PREFIX} timeout")
        raise WatchTimeoutError(f"timeout: no prompt detected within {cfg.timeout:g}s")

    def _find_prompt(self) -> Optional[HistoryEntry]:
        try:
            text = self.reader.read_history_file()
        except OSError as e:
            self.log.debug(f"{LOG_PREFIX} history not readable: {e}")
            return None
        try:
            entries = parse_history(text)
        except HistoryParseError as e:
            self.log.debug(f"{LOG_PREFIX} history not parseable: {e}")
            return None

        entry = find_first_prompt(entries, self.config.worktree_path, self.config.created_at)
        if entry is None:
            self.log.debug(f"{LOG_PREFIX} no prompt yet", entries=len(entries))
        return entry

    def _rename(self, entry: HistoryEntry) -> RenameResult:
        cfg = self.config
        try:
            raw = self.generator.generate_branch_name(entry.display)
        except CommandError as e:
            self.log.error(f"{LOG_PREFIX} name generation failed: {e}")
            raise RenameError(f"generating branch name: {e}") from e

        slug = sanitize_branch_name(raw)
        if not slug:
            self.log.error(f"{LOG_PREFIX} generated name sanitized to empty", raw=repr(raw))
            raise RenameError("generated branch name is empty")

        new_branch = branch_with_namespace(cfg.branch, slug)
        self.log.info(f"{LOG_PREFIX} renaming", old=cfg.branch, new=new_branch)
        try:
            rename_branch(self.git_runner, cfg.worktree_path, cfg.branch, new_branch)
        except CommandError as e:
            self.log.error(f"{LOG_PREFIX} git rename failed: {e}")
            raise RenameError(f"renaming branch: {e}") from e

        return RenameResult(
            new_branch=new_branch,
            prompt=entry.display,
            session_id=entry.session_id or "",
            session_renamed=self._rename_session(new_branch),
        )

    def _rename_session(self, new_branch: str) -> bool:
        """Rename the tmux session after the new slug. Never raises."""
        cfg = self.config
        if self.layout_manager is None or not cfg.session_name:
            return False

        # The session may already carry the slug of an earlier rename
        current = self.layout_manager.resolve_session_name(
            cfg.worktree_path, branch_lookup=lambda _path: cfg.branch
        )
        target = slug_from_branch(new_branch)
        if current == target:
            return False

        try:
            self.layout_manager.rename_session(current, target)
        except CommandError as e:
            self.log.warning(f"{LOG_PREFIX} session rename failed (ignored): {e}")
            return False
        self.log.info(f"{LOG_PREFIX} session renamed", old=current, new=target)
        return True
