"""
Worktree commands: new, remove.
"""

from pathlib import Path
from typing import Annotated, Dict, Optional

import typer
from rich import print as rprint

from . import _shared
from ._shared import app
from .session import open_worktree_session
from ..config import find_repository, get_repository, get_worktree_base_path
from ..exceptions import WorktreeError
from ..worktrees import archive_worktree, create_worktree


def _resolve_repository(name_or_path: str) -> Dict[str, str]:
    """A configured repository, or an ad-hoc one for a plain directory."""
    repo = get_repository(name_or_path)
    if repo is not None:
        return repo
    path = Path(name_or_path).expanduser().resolve()
    if not path.is_dir():
        _shared.fail(f"unknown repository: {name_or_path}")
    return {"name": path.name, "path": str(path), "startup_command": ""}


@app.command()
def new(
    repository: Annotated[str, typer.Argument(help="Configured repository name, or a repository path")],
    rename: Annotated[
        bool,
        typer.Option("--rename/--no-rename", help="Rename the placeholder branch after the first prompt"),
    ] = True,
    open_session: Annotated[
        bool, typer.Option("--open/--no-open", help="Switch to the new worktree's session")
    ] = True,
):
    """Create a worktree on a placeholder branch like shoji/south-korea.

    The session is opened with claude running and, unless --no-rename, a
    watcher that renames the branch after the first prompt.
    """
    if open_session:
        _shared.require_inside_tmux("new")

    repo = _resolve_repository(repository)
    try:
        worktree = create_worktree(
            _shared.get_git_runner(), repo["path"], get_worktree_base_path(), repo["name"]
        )
    except WorktreeError as e:
        _shared.fail(str(e))

    rprint(f"[green]✓[/green] Created [bold]{worktree.path}[/bold] on [bold]{worktree.branch}[/bold]")
    if not open_session:
        return

    open_worktree_session(
        worktree.path,
        repo["startup_command"],
        rename=rename,
        branch=worktree.branch,
        created_at_ms=worktree.created_at,
    )


@app.command()
def remove(
    path: Annotated[str, typer.Argument(help="Worktree directory")],
    repository: Annotated[
        Optional[str],
        typer.Option("--repo", help="Repository the worktree belongs to (default: from config)"),
    ] = None,
):
    """Kill a worktree's session and remove the worktree."""
    worktree = str(Path(path).expanduser().resolve())

    if repository is not None:
        repo_path = _resolve_repository(repository)["path"]
    else:
        repo = find_repository(worktree)
        if repo is None:
            _shared.fail(f"cannot tell which repository {worktree} belongs to; pass --repo")
        repo_path = repo["path"]

    manager = _shared.get_layout_manager() if _shared.is_inside_tmux() else None
    try:
        archive_worktree(_shared.get_git_runner(), repo_path, worktree, layout_manager=manager)
    except WorktreeError as e:
        _shared.fail(str(e))
    rprint(f"[green]✓[/green] Removed [bold]{worktree}[/bold]")
