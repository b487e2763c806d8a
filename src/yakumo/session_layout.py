"""
tmux session layout for worktrees.

Every worktree gets one tmux session with a fixed topology:

    main-window                          background-window
    +------------------+----------+      +------------------+
    |                  | tr-1     |      | center-2         |
    |  center-1        +----------+      | center-3         |
    |                  | br-1     |      | br-2             |
    +------------------+----------+      | br-3             |
                                         +------------------+

Pane identity never moves. The swap commands in pane_swap exchange the
*content* of panes between the two windows instead.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .branch_names import slug_from_branch
from .exceptions import CommandError, LayoutError
from .logging_config import get_logger
from .protocols import TmuxRunner

logger = get_logger("session_layout")

MAIN_WINDOW = "main-window"
BACKGROUND_WINDOW = "background-window"
MAIN_SESSION_NAME = "yakumo-main"

MAIN_PANE_COUNT = 3
BACKGROUND_PANE_COUNT = 4
RIGHT_COLUMN_PERCENT = 25

# pane_current_command values that mean "a shell waiting at its prompt"
IDLE_SHELLS = frozenset({"zsh", "bash", "fish", "sh"})

MAIN_SESSION_BANNER = "yakumo - pick a worktree to start working"

# Returns the checked-out branch of a worktree path.
BranchLookup = Callable[[str], str]


class PaneArea(Enum):
    """Logical screen area a pane belongs to."""
    CENTER = "center"
    TOP_RIGHT = "top-right"
    BOTTOM_RIGHT = "bottom-right"


@dataclass(frozen=True)
class Pane:
    """One pane of a session layout."""
    area: PaneArea
    index: int  # 1-based within the area
    pane_id: str  # tmux pane id, e.g. "%3"

    @property
    def label(self) -> str:
        return f"{self.area.value}-{self.index}"


@dataclass
class SessionLayout:
    """All pane references for a worktree session.

    A layout for a session that already existed carries only the session
    name; pane ids are known only for sessions created in this call.
    """
    session_name: str
    center_1: Optional[Pane] = None
    top_right_1: Optional[Pane] = None
    bottom_right_1: Optional[Pane] = None
    center_2: Optional[Pane] = None
    center_3: Optional[Pane] = None
    bottom_right_2: Optional[Pane] = None
    bottom_right_3: Optional[Pane] = None

    @property
    def is_new(self) -> bool:
        """True when pane ids were captured, i.e. the session was just built."""
        return self.center_1 is not None

    def panes(self) -> List[Pane]:
        """All known panes, main window first."""
        ordered = [
            self.center_1, self.top_right_1, self.bottom_right_1,
            self.center_2, self.center_3, self.bottom_right_2, self.bottom_right_3,
        ]
        return [p for p in ordered if p is not None]


def parse_pane_ids(output: str) -> List[str]:
    """Parse `list-panes -F '#{pane_id}'` output into pane ids."""
    return [line.strip() for line in output.strip().splitlines() if line.strip()]


def parse_window_list(output: str, window_name: str) -> str:
    """Index of window_name in `list-windows -F '#{window_name}\\t#{window_index}'` output."""
    for line in output.strip().splitlines():
        name, sep, index = line.partition("\t")
        if sep and name == window_name:
            return index.strip()
    return ""


def build_session_layout(
    session_name: str, main_pane_ids: List[str], background_pane_ids: List[str]
) -> SessionLayout:
    """Assemble a SessionLayout from captured pane ids.

    Raises:
        LayoutError: Unless there are exactly 3 main and 4 background panes
    """
    if len(main_pane_ids) != MAIN_PANE_COUNT:
        raise LayoutError(
            f"expected {MAIN_PANE_COUNT} {MAIN_WINDOW} panes, got {len(main_pane_ids)}"
        )
    if len(background_pane_ids) != BACKGROUND_PANE_COUNT:
        raise LayoutError(
            f"expected {BACKGROUND_PANE_COUNT} {BACKGROUND_WINDOW} panes, "
            f"got {len(background_pane_ids)}"
        )

    main, bg = main_pane_ids, background_pane_ids
    return SessionLayout(
        session_name=session_name,
        center_1=Pane(PaneArea.CENTER, 1, main[0]),
        top_right_1=Pane(PaneArea.TOP_RIGHT, 1, main[1]),
        bottom_right_1=Pane(PaneArea.BOTTOM_RIGHT, 1, main[2]),
        center_2=Pane(PaneArea.CENTER, 2, bg[0]),
        center_3=Pane(PaneArea.CENTER, 3, bg[1]),
        bottom_right_2=Pane(PaneArea.BOTTOM_RIGHT, 2, bg[2]),
        bottom_right_3=Pane(PaneArea.BOTTOM_RIGHT, 3, bg[3]),
    )


@dataclass
class SessionLayoutManager:
    """Creates, finds and addresses worktree sessions through a TmuxRunner.

    No locking and no retries: each method is a bounded sequence of tmux
    calls. Callers must not overlap layout-changing calls on one session.
    """

    runner: TmuxRunner
    home_directory: str = field(default_factory=lambda: str(Path.home()))

    # -- existence and naming ------------------------------------------------

    def has_session(self, name: str) -> bool:
        """Check whether a session exists. tmux errors mean "no"."""
        try:
            self.runner.run("has-session", "-t", name)
        except CommandError:
            return False
        return True

    def resolve_session_name(
        self, worktree_path: str, branch_lookup: Optional[BranchLookup] = None
    ) -> str:
        """Find the session name for a worktree.

        Prefers a session named after the worktree directory. When there is
        none, a session named after the branch slug ("fix-login" for
        "shoji/fix-login") is used if it exists, which finds sessions that
        were renamed after their branch. Otherwise the directory name.
        """
        default_name = Path(worktree_path).name
        if self.has_session(default_name):
            return default_name
        if branch_lookup is None:
            return default_name

        try:
            branch = branch_lookup(worktree_path)
        except CommandError as e:
            logger.debug("branch lookup failed for %s: %s", worktree_path, e)
            return default_name
        if not branch:
            return default_name

        slug = slug_from_branch(branch)
        if slug and self.has_session(slug):
            return slug
        return default_name

    def current_session_name(self) -> str:
        """Name of the session this client is attached to.

        $TMUX_PANE, when set, pins the lookup to our own pane so the right
        session is found even with several clients attached.
        """
        args = ["display-message", "-p"]
        pane = os.environ.get("TMUX_PANE")
        if pane:
            args += ["-t", pane]
        args.append("#{session_name}")
        return self.runner.run(*args).strip()

    def is_current_session(self, name: str) -> bool:
        try:
            return self.current_session_name() == name
        except CommandError:
            return False

    # -- simple wrappers -----------------------------------------------------

    def kill_session(self, name: str) -> None:
        self.runner.run("kill-session", "-t", name)

    def rename_session(self, old_name: str, new_name: str) -> None:
        self.runner.run("rename-session", "-t", old_name, new_name)

    def switch_to_session(self, name: str) -> None:
        """Switch the client to a session and focus its main window."""
        try:
            self.runner.run("switch-client", "-t", name)
        except CommandError as e:
            raise LayoutError(f"switching to session {name}: {e}") from e
        try:
            self.runner.run("select-window", "-t", f"{name}:{MAIN_WINDOW}")
        except CommandError as e:
            raise LayoutError(f"selecting {MAIN_WINDOW} in session {name}: {e}") from e

    def send_keys(self, target: str, command: str) -> None:
        """Type a command into a pane and press Enter."""
        try:
            self.runner.run("send-keys", "-t", target, command, "Enter")
        except CommandError as e:
            raise LayoutError(f"sending keys to {target}: {e}") from e

    def select_pane(self, pane_id: str) -> None:
        try:
            self.runner.run("select-pane", "-t", pane_id)
        except CommandError as e:
            raise LayoutError(f"selecting pane {pane_id}: {e}") from e

    # -- windows in the current session -------------------------------------

    def find_window(self, window_name: str) -> str:
        """Index of the current session's window with this name, or ""."""
        out = self.runner.run("list-windows", "-F", "#{window_name}\t#{window_index}")
        return parse_window_list(out, window_name)

    def select_worktree_window(self, worktree_path: str) -> str:
        """Switch to the worktree's window in the current session.

        A window named after the worktree directory is created when there
        is none. Returns the window name.

        Raises:
            LayoutError: If tmux refuses any step
        """
        name = Path(worktree_path).name
        try:
            index = self.find_window(name)
        except CommandError as e:
            raise LayoutError(f"listing tmux windows: {e}") from e

        if index:
            self._step(f"selecting window {name}", "select-window", "-t", index)
        else:
            self._step(f"creating window {name}", "new-window", "-n", name, "-c", worktree_path)
        return name

    # -- layout construction -------------------------------------------------

    def _step(self, description: str, *args: str) -> str:
        try:
            return self.runner.run(*args)
        except CommandError as e:
            raise LayoutError(f"{description}: {e}") from e

    def _list_pane_ids(self, session_name: str, window: str) -> List[str]:
        target = f"{session_name}:{window}"
        out = self._step(f"listing panes for {target}", "list-panes", "-t", target, "-F", "#{pane_id}")
        return parse_pane_ids(out)

    def _create_main_window(self, session_name: str, start_dir: str) -> None:
        self._step(
            f"renaming window to {MAIN_WINDOW}",
            "rename-window", "-t", f"{session_name}:0", MAIN_WINDOW,
        )
        main_target = f"{session_name}:{MAIN_WINDOW}"
        self._step(
            "creating right column split",
            "split-window", "-h", "-t", main_target, "-c", start_dir,
            "-p", str(RIGHT_COLUMN_PERCENT),
        )
        self._step(
            "creating bottom-right split",
            "split-window", "-v", "-t", f"{main_target}.1", "-c", start_dir,
        )

    def _create_background_window(self, session_name: str, start_dir: str) -> None:
        self._step(
            "creating background window",
            "new-window", "-t", session_name, "-n", BACKGROUND_WINDOW, "-c", start_dir,
        )
        bg_target = f"{session_name}:{BACKGROUND_WINDOW}"
        for i in range(BACKGROUND_PANE_COUNT - 1):
            self._step(
                f"creating background pane {i + 2}",
                "split-window", "-v", "-t", bg_target, "-c", start_dir,
            )

    def create_session_layout(
        self, session_name: str, start_dir: str, startup_command: str = ""
    ) -> SessionLayout:
        """Create a detached session with the full two-window layout.

        The startup command (e.g. a dependency install) runs in start_dir
        before any splitting; its failure is logged and ignored. Any other
        failed step aborts with LayoutError and leaves the partial session
        in place.
        """
        self._step(
            f"creating session {session_name}",
            "new-session", "-d", "-s", session_name, "-c", start_dir,
        )

        if startup_command:
            try:
                self.runner.run("run-shell", "-c", start_dir, startup_command)
            except CommandError as e:
                logger.warning("startup command failed in %s (continuing): %s", start_dir, e)

        self._create_main_window(session_name, start_dir)
        main_ids = self._list_pane_ids(session_name, MAIN_WINDOW)

        self._create_background_window(session_name, start_dir)
        background_ids = self._list_pane_ids(session_name, BACKGROUND_WINDOW)

        layout = build_session_layout(session_name, main_ids, background_ids)
        logger.info("created session %s in %s", session_name, start_dir)
        return layout

    def select_worktree_session(
        self,
        worktree_path: str,
        startup_command: str = "",
        branch_lookup: Optional[BranchLookup] = None,
    ) -> SessionLayout:
        """Switch to the worktree's session, creating it first if needed.

        Returns a name-only layout for an existing session, or the full
        layout of a freshly created one (named after the directory).
        """
        session_name = self.resolve_session_name(worktree_path, branch_lookup)

        if self.has_session(session_name):
            self.switch_to_session(session_name)
            return SessionLayout(session_name=session_name)

        new_name = Path(worktree_path).name
        try:
            layout = self.create_session_layout(new_name, worktree_path, startup_command)
        except LayoutError as e:
            raise LayoutError(f"creating session layout: {e}") from e

        self.switch_to_session(new_name)
        return layout

    # -- helpers used by the CLI ---------------------------------------------

    def ensure_main_session(self) -> None:
        """Create the home session if it does not exist yet."""
        if self.has_session(MAIN_SESSION_NAME):
            return
        self._step(
            "creating main session",
            "new-session", "-d", "-s", MAIN_SESSION_NAME, "-c", self.home_directory,
        )
        try:
            self.send_keys(MAIN_SESSION_NAME, f"echo '{MAIN_SESSION_BANNER}'")
        except LayoutError as e:
            logger.debug("main session banner not shown: %s", e)

    def switch_to_main_session(self) -> None:
        self.ensure_main_session()
        self._step("switching to main session", "switch-client", "-t", MAIN_SESSION_NAME)

    def find_idle_background_pane(self, session_name: str) -> str:
        """Return the first background pane sitting at a shell prompt.

        Raises:
            LayoutError: If the panes cannot be listed or none is idle
        """
        target = f"{session_name}:{BACKGROUND_WINDOW}"
        out = self._step(
            "listing background panes",
            "list-panes", "-t", target, "-F", "#{pane_id}\t#{pane_current_command}",
        )
        for line in out.strip().splitlines():
            parts = line.strip().split("\t", 1)
            if len(parts) == 2 and parts[1].lower() in IDLE_SHELLS:
                return parts[0]
        raise LayoutError(f"no idle background pane found in session {session_name}")
