"""
Branch rename commands: watch-rename, and launching it in a tmux pane.
"""

import shlex
import shutil
import sys
from typing import Annotated, Optional

import typer
from rich import print as rprint

from . import _shared
from ._shared import app
from ..branch_names import ClaudeBranchNameGenerator
from ..config import get_rename_config
from ..dependency_check import is_inside_tmux, require_claude
from ..exceptions import ClaudeNotFoundError, LayoutError, RenameError
from ..history_reader import HistoryFileReader
from ..logging_config import StructuredLogger, setup_watcher_logging
from ..rename_watcher import BranchRenameWatcher, WatcherConfig
from ..session_layout import SessionLayoutManager
from ..timeparse import parse_created_at, parse_duration


def yakumo_executable() -> str:
    """Path of the yakumo entry point, for re-invoking ourselves in a pane."""
    return shutil.which("yakumo") or sys.argv[0]


def build_watch_command(
    executable: str,
    worktree_path: str,
    branch: str,
    session_name: str,
    created_at: int,
) -> str:
    """Shell command line that runs watch-rename; every argument is quoted."""
    return (
        f"{shlex.quote(executable)} watch-rename"
        f" --path {shlex.quote(worktree_path)}"
        f" --branch {shlex.quote(branch)}"
        f" --created-at {created_at}"
        f" --session-name {shlex.quote(session_name)}"
    )


def launch_rename_watcher(
    manager: SessionLayoutManager,
    pane_id: str,
    worktree_path: str,
    branch: str,
    session_name: str,
    created_at: int,
    executable: Optional[str] = None,
) -> None:
    """Type the watch-rename command into a pane.

    Raises:
        LayoutError: If the keys cannot be sent
    """
    command = build_watch_command(
        executable or yakumo_executable(), worktree_path, branch, session_name, created_at
    )
    manager.send_keys(pane_id, command)


@app.command("watch-rename")
def watch_rename(
    path: Annotated[str, typer.Option("--path", help="Absolute path of the worktree")],
    branch: Annotated[str, typer.Option("--branch", help="Branch the worktree was created on")],
    created_at: Annotated[
        str,
        typer.Option("--created-at", help="Creation time: Unix ms, or a duration ago (e.g. 5m)"),
    ],
    session_name: Annotated[
        str, typer.Option("--session-name", help="tmux session to rename along with the branch")
    ] = "",
    poll_interval: Annotated[
        Optional[str], typer.Option("--poll-interval", help="Override history poll interval (e.g. 2s)")
    ] = None,
    timeout: Annotated[
        Optional[str], typer.Option("--timeout", help="Override watch timeout (e.g. 10m)")
    ] = None,
):
    """Wait for the first Claude prompt in a worktree and rename its branch.

    Normally started by `yakumo open --rename` in a background pane.
    """
    try:
        created_at_ms = parse_created_at(created_at)
    except ValueError as e:
        _shared.fail(f"invalid --created-at {created_at!r}: {e}")

    settings = get_rename_config()
    try:
        interval = parse_duration(poll_interval) if poll_interval else settings["poll_interval"]
        limit = parse_duration(timeout) if timeout else settings["timeout"]
    except ValueError as e:
        _shared.fail(str(e))

    try:
        claude_path = require_claude(settings["claude_path"])
    except ClaudeNotFoundError as e:
        _shared.fail(str(e))

    logger = StructuredLogger(setup_watcher_logging())

    layout_manager = _shared.get_layout_manager() if is_inside_tmux() else None
    watcher = BranchRenameWatcher(
        WatcherConfig(
            worktree_path=path,
            branch=branch,
            session_name=session_name,
            created_at=created_at_ms,
            poll_interval=interval,
            timeout=limit,
        ),
        reader=HistoryFileReader(settings["history_path"]),
        generator=ClaudeBranchNameGenerator(claude_path=claude_path, model=settings["model"]),
        git_runner=_shared.get_git_runner(),
        layout_manager=layout_manager,
        logger=logger,
    )

    try:
        result = watcher.run()
    except RenameError as e:
        logger.error(f"[branch-rename] watcher exited with error: {e}")
        raise typer.Exit(code=1)

    rprint(f"[green]✓[/green] Renamed [bold]{branch}[/bold] → [bold]{result.new_branch}[/bold]")
    if result.session_renamed:
        rprint("  tmux session renamed to match")


def start_watcher_for_layout(
    manager: SessionLayoutManager,
    layout,
    worktree_path: str,
    branch: str,
    created_at: int,
) -> Optional[str]:
    """Launch watch-rename in bottom-right-2, or any idle background pane.

    Returns the pane used, or None when no pane was available.
    """
    if layout.bottom_right_2 is not None:
        pane_id = layout.bottom_right_2.pane_id
    else:
        try:
            pane_id = manager.find_idle_background_pane(layout.session_name)
        except LayoutError as e:
            rprint(f"[yellow]Warning: rename watcher not started: {e}[/yellow]")
            return None

    try:
        launch_rename_watcher(manager, pane_id, worktree_path, branch, layout.session_name, created_at)
    except LayoutError as e:
        rprint(f"[yellow]Warning: rename watcher launch failed: {e}[/yellow]")
        return None
    return pane_id
