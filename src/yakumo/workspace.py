"""
Headless workspace controller.

Owns the per-worktree rename status table and the per-session agent status
cache. Blocking work (rename watchers, pane captures) runs on a
ThreadPoolExecutor; each job reports back by posting exactly one event to
a queue. Only process_pending(), called from the owning thread, mutates the
tables, so readers on that thread never see a half-applied update.
"""

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Set, Tuple, Union

from .agent_detector import AgentInfo, AgentState, AgentStateDetector, highest_state
from .exceptions import CommandError, InvalidTransitionError, RenameError, WatchTimeoutError
from .logging_config import get_logger
from .protocols import BranchNameGenerator, GitRunner, HistoryReader
from .rename_watcher import (
    BranchRenameInfo,
    BranchRenameWatcher,
    RenameResult,
    RenameStatus,
    WatcherConfig,
)
from .session_layout import SessionLayoutManager
from .worktrees import NewWorktree

logger = get_logger("workspace")


# -- events ------------------------------------------------------------------

@dataclass(frozen=True)
class WorktreeAdded:
    """A worktree was created and should be renamed once prompted."""
    worktree_path: str
    branch: str
    session_name: str
    created_at: int

    @classmethod
    def from_new_worktree(cls, worktree: NewWorktree) -> "WorktreeAdded":
        return cls(worktree.path, worktree.branch, worktree.session_name, worktree.created_at)


@dataclass(frozen=True)
class AgentTick:
    """Refresh agent status for these sessions."""
    session_names: Tuple[str, ...]


@dataclass(frozen=True)
class AgentStatusUpdate:
    """Detection result for one session.

    agents is None if the session is gone. A non-empty error means the
    detection itself failed and the cached status should stay.
    """
    session_name: str
    agents: Optional[Tuple[AgentInfo, ...]]
    error: str = ""


@dataclass(frozen=True)
class RenameDetected:
    worktree_path: str
    prompt: str
    session_id: str = ""


@dataclass(frozen=True)
class RenameFinished:
    """A watcher returned. Exactly one of new_branch or error is set."""
    worktree_path: str
    new_branch: str = ""
    error: str = ""
    timed_out: bool = False


Event = Union[WorktreeAdded, AgentTick, AgentStatusUpdate, RenameDetected, RenameFinished]

# Builds a watcher for a config; the callback reports (prompt, session_id).
WatcherFactory = Callable[[WatcherConfig, Callable[[str, str], None]], "RunnableWatcher"]


class RunnableWatcher(Protocol):
    """Anything with a blocking run() returning a RenameResult."""

    def run(self) -> RenameResult:
        ...


def make_watcher_factory(
    reader: HistoryReader,
    generator: BranchNameGenerator,
    git_runner: GitRunner,
    layout_manager: Optional[SessionLayoutManager] = None,
) -> WatcherFactory:
    """Factory producing BranchRenameWatchers that share these collaborators."""
    def factory(config: WatcherConfig, on_detected: Callable[[str, str], None]) -> BranchRenameWatcher:
        return BranchRenameWatcher(
            config,
            reader=reader,
            generator=generator,
            git_runner=git_runner,
            layout_manager=layout_manager,
            on_detected=on_detected,
        )
    return factory


class WorkspaceController:
    """Event loop state for a set of worktree sessions."""

    def __init__(
        self,
        detector: AgentStateDetector,
        watcher_factory: WatcherFactory,
        max_workers: int = 4,
        poll_interval: float = 2.0,
        rename_timeout: float = 600.0,
    ):
        self.detector = detector
        self.watcher_factory = watcher_factory
        self.poll_interval = poll_interval
        self.rename_timeout = rename_timeout

        self.renames: Dict[str, BranchRenameInfo] = {}
        self.agent_status: Dict[str, List[AgentInfo]] = {}
        self.status_message = ""

        self._events: "queue.Queue[Event]" = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="yakumo")
        self._futures: Set[Future] = set()
        self._futures_lock = threading.Lock()

    # -- queue -----------------------------------------------------------------

    def post(self, event: Event) -> None:
        """Enqueue an event. Safe to call from any thread."""
        self._events.put(event)

    def process_pending(self) -> int:
        """Handle every queued event in order. Returns how many were handled."""
        handled = 0
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return handled
            self._dispatch(event)
            handled += 1

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Block until no background job is running, then drain the queue."""
        while True:
            with self._futures_lock:
                pending = set(self._futures)
            if not pending:
                break
            done, _ = wait(pending, timeout=timeout)
            if not done:
                break
            self.process_pending()
        self.process_pending()

    def shutdown(self, wait_for_jobs: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_jobs)

    def _submit(self, fn: Callable[[], Event], on_error: Callable[[Exception], Event]) -> None:
        """Run fn on the pool and post its event.

        If fn raises, the event built by on_error is posted instead, so every
        job reports back exactly once.
        """
        def job() -> None:
            try:
                event = fn()
            except Exception as e:
                logger.exception("background job failed")
                event = on_error(e)
            self.post(event)

        future = self._executor.submit(job)
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    # -- handlers ----------------------------------------------------------------

    def _dispatch(self, event: Event) -> None:
        if isinstance(event, WorktreeAdded):
            self._on_worktree_added(event)
        elif isinstance(event, AgentTick):
            self._on_agent_tick(event)
        elif isinstance(event, AgentStatusUpdate):
            self._on_agent_status(event)
        elif isinstance(event, RenameDetected):
            self._on_rename_detected(event)
        elif isinstance(event, RenameFinished):
            self._on_rename_finished(event)
        else:
            raise TypeError(f"unknown event {event!r}")

    def _on_worktree_added(self, event: WorktreeAdded) -> None:
        if event.worktree_path in self.renames:
            logger.debug("rename already tracked for %s", event.worktree_path)
            return
        self.renames[event.worktree_path] = BranchRenameInfo(
            worktree_path=event.worktree_path,
            original_branch=event.branch,
            created_at=event.created_at,
        )

        config = WatcherConfig(
            worktree_path=event.worktree_path,
            branch=event.branch,
            session_name=event.session_name,
            created_at=event.created_at,
            poll_interval=self.poll_interval,
            timeout=self.rename_timeout,
        )
        path = event.worktree_path

        def on_detected(prompt: str, session_id: str) -> None:
            self.post(RenameDetected(path, prompt, session_id))

        watcher = self.watcher_factory(config, on_detected)
        self._submit(
            lambda: self._run_watcher(path, watcher),
            lambda e: RenameFinished(path, error=f"unexpected error: {e}"),
        )

    @staticmethod
    def _run_watcher(path: str, watcher: RunnableWatcher) -> RenameFinished:
        try:
            result = watcher.run()
        except WatchTimeoutError as e:
            return RenameFinished(path, error=str(e), timed_out=True)
        except RenameError as e:
            return RenameFinished(path, error=str(e))
        except Exception as e:
            logger.exception("rename watcher for %s crashed", path)
            return RenameFinished(path, error=f"unexpected error: {e}")
        return RenameFinished(path, new_branch=result.new_branch)

    def _on_agent_tick(self, event: AgentTick) -> None:
        for name in event.session_names:
            self._submit(
                lambda name=name: self._detect(name),
                lambda e, name=name: AgentStatusUpdate(name, None, error=f"unexpected error: {e}"),
            )

    def _detect(self, session_name: str) -> AgentStatusUpdate:
        try:
            agents = self.detector.detect_session_agents(session_name)
        except CommandError as e:
            return AgentStatusUpdate(session_name, None, error=str(e))
        return AgentStatusUpdate(session_name, None if agents is None else tuple(agents))

    def _on_agent_status(self, event: AgentStatusUpdate) -> None:
        if event.error:
            logger.warning("agent detection for %s failed: %s", event.session_name, event.error)
            self.status_message = f"{event.session_name}: {event.error}"
        elif event.agents is None:
            self.agent_status.pop(event.session_name, None)
        else:
            self.agent_status[event.session_name] = list(event.agents)

    def _on_rename_detected(self, event: RenameDetected) -> None:
        info = self.renames.get(event.worktree_path)
        if info is None:
            return
        self._transition(info, lambda: info.mark_detected(event.prompt, event.session_id))

    def _on_rename_finished(self, event: RenameFinished) -> None:
        info = self.renames.get(event.worktree_path)
        if info is None:
            return
        if event.timed_out:
            self._transition(info, lambda: info.mark_skipped(event.error))
        elif event.error:
            # A watcher that died before detecting a prompt never left PENDING
            if info.status is RenameStatus.PENDING:
                self._transition(info, lambda: info.mark_skipped(event.error))
            else:
                self._transition(info, lambda: info.mark_failed(event.error))
            self.status_message = event.error
        else:
            self._transition(info, lambda: info.mark_completed(event.new_branch))

    def _transition(self, info: BranchRenameInfo, apply: Callable[[], None]) -> None:
        try:
            apply()
        except InvalidTransitionError as e:
            logger.warning("%s: %s", info.worktree_path, e)
            self.status_message = str(e)

    # -- queries -----------------------------------------------------------------

    def session_state(self, session_name: str) -> AgentState:
        """Highest agent state of a session (NONE if unknown)."""
        return highest_state(self.agent_status.get(session_name, ()))

    def active_renames(self) -> Iterable[BranchRenameInfo]:
        return (info for info in self.renames.values() if not info.status.is_terminal)
