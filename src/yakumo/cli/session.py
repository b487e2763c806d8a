"""
Session commands: open, home, swap-center, swap-right-below.
"""

import os
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print as rprint

from . import _shared
from ._shared import app
from .rename import start_watcher_for_layout
from ..claude_config import ClaudeConfigEditor
from ..config import find_repository
from ..dependency_check import check_claude
from ..exceptions import CommandError, LayoutError
from ..implementations import current_branch
from ..pane_swap import swap_center, swap_right_below
from ..timeparse import parse_created_at


@app.command("open")
def open_worktree(
    path: Annotated[str, typer.Argument(help="Worktree directory")],
    startup_command: Annotated[
        Optional[str],
        typer.Option("--startup-command", help="Command to run before splitting (default: from config)"),
    ] = None,
    rename: Annotated[
        bool,
        typer.Option("--rename/--no-rename", help="Rename the branch after the first Claude prompt"),
    ] = False,
    branch: Annotated[
        Optional[str], typer.Option("--branch", help="Branch to rename (default: checked-out branch)")
    ] = None,
    created_at: Annotated[
        Optional[str],
        typer.Option("--created-at", help="Only prompts after this time count (Unix ms or e.g. 5m)"),
    ] = None,
    window: Annotated[
        bool,
        typer.Option("--window", help="Open as a plain window in the current session instead"),
    ] = False,
):
    """Switch to a worktree's tmux session, building it on first use.

    A new session gets claude started in its center pane.
    """
    _shared.require_inside_tmux("open")

    worktree = str(Path(path).expanduser().resolve())
    if not os.path.isdir(worktree):
        _shared.fail(f"not a directory: {worktree}")

    if window:
        try:
            name = _shared.get_layout_manager().select_worktree_window(worktree)
        except LayoutError as e:
            _shared.fail(str(e))
        rprint(f"[dim]Window {name}[/dim]")
        return

    if startup_command is None:
        repo = find_repository(worktree)
        startup_command = repo["startup_command"] if repo else ""

    try:
        created_at_ms = parse_created_at(created_at) if created_at else int(time.time() * 1000)
    except ValueError as e:
        _shared.fail(f"invalid --created-at {created_at!r}: {e}")

    open_worktree_session(worktree, startup_command, rename, branch, created_at_ms)


def open_worktree_session(
    worktree: str,
    startup_command: str,
    rename: bool,
    branch: Optional[str],
    created_at_ms: int,
) -> None:
    """Select or build the session, start claude in a new one, maybe watch."""
    git = _shared.get_git_runner()
    manager = _shared.get_layout_manager()
    try:
        layout = manager.select_worktree_session(
            worktree,
            startup_command=startup_command,
            branch_lookup=lambda p: current_branch(git, p),
        )
    except LayoutError as e:
        _shared.fail(str(e))

    if layout.is_new:
        _start_claude(manager, layout.center_1.pane_id, worktree)

    if rename:
        if branch is None:
            try:
                branch = current_branch(git, worktree)
            except CommandError as e:
                _shared.fail(f"cannot determine branch: {e}")
        pane = start_watcher_for_layout(manager, layout, worktree, branch, created_at_ms)
        if pane:
            rprint(f"[dim]Watching for the first prompt in {pane}[/dim]")


def _start_claude(manager, pane_id: str, worktree: str) -> None:
    """Trust the worktree, launch claude in the pane and focus it."""
    available, _, _ = check_claude()
    if available:
        try:
            ClaudeConfigEditor.user_level().ensure_directory_trusted(worktree)
        except (ValueError, OSError) as e:
            rprint(f"[yellow]Warning: claude trust not set: {e}[/yellow]")
        try:
            manager.send_keys(pane_id, "claude")
        except LayoutError as e:
            rprint(f"[yellow]Warning: claude launch failed: {e}[/yellow]")

    try:
        manager.select_pane(pane_id)
    except LayoutError as e:
        rprint(f"[yellow]Warning: {e}[/yellow]")


@app.command()
def home():
    """Switch to the yakumo-main session, creating it if needed."""
    _shared.require_inside_tmux("home")
    try:
        _shared.get_layout_manager().switch_to_main_session()
    except LayoutError as e:
        _shared.fail(str(e))


@app.command("swap-center")
def swap_center_command():
    """Rotate the center pane with the two hidden center panes."""
    _shared.require_inside_tmux("swap-center")
    try:
        swap_center(_shared.get_layout_manager())
    except (LayoutError, CommandError) as e:
        _shared.fail(str(e))


@app.command("swap-right-below")
def swap_right_below_command():
    """Rotate the bottom-right pane with the two hidden bottom-right panes."""
    _shared.require_inside_tmux("swap-right-below")
    try:
        swap_right_below(_shared.get_layout_manager())
    except (LayoutError, CommandError) as e:
        _shared.fail(str(e))
