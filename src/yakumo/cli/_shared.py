"""
Shared CLI state: Typer apps, console, runner factories and helpers.
"""

from typing import Annotated, NoReturn, Optional

import typer
from rich import print as rprint
from rich.console import Console

from ..dependency_check import is_inside_tmux, require_tmux
from ..exceptions import TmuxNotFoundError
from ..implementations import RealGitRunner, RealTmuxRunner
from ..logging_config import setup_cli_logging
from ..session_layout import SessionLayoutManager

# Main app
app = typer.Typer(
    name="yakumo",
    help="Git worktree workspaces in tmux, with Claude Code awareness",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage configuration",
    no_args_is_help=False,
    invoke_without_command=True,
)
app.add_typer(config_app, name="config")

# Console for rich output
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        from .. import __version__
        print(f"yakumo {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
):
    """Git worktree workspaces in tmux."""
    setup_cli_logging()


# Runner factories. Tests monkeypatch these to inject fakes.

def get_tmux_runner():
    return RealTmuxRunner()


def get_git_runner():
    return RealGitRunner()


def get_layout_manager() -> SessionLayoutManager:
    return SessionLayoutManager(runner=get_tmux_runner())


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    rprint(f"[red]Error: {message}[/red]")
    raise typer.Exit(code=1)


def require_inside_tmux(command: str) -> None:
    """Exit unless tmux is installed and this process runs inside a client."""
    try:
        require_tmux()
    except TmuxNotFoundError as e:
        fail(str(e))
    if not is_inside_tmux():
        fail(f"{command} requires running inside tmux")
