"""
`yakumo config`: create, display and locate the YAML config file.
"""

from typing import Annotated

import typer
from rich import print as rprint

from ._shared import config_app

CONFIG_TEMPLATE = """\
# yakumo config (every key is optional)

# `yakumo new` creates worktrees as <worktree_base_path>/<repo name>/<country>.
# worktree_base_path: ~/yakumo

# Repositories whose worktrees yakumo opens. `startup_command` runs once in a
# fresh worktree session, before the panes are split.
# repositories:
#   - name: web
#     path: ~/src/web
#     startup_command: npm install

# Branch naming after the first Claude prompt of a new worktree.
# rename:
#   poll_interval: 2        # seconds between reads of the prompt history
#   timeout: 600            # give up after this many seconds
#   history_path: ~/.claude/history.jsonl
#   claude_path: claude
#   model: haiku
"""


@config_app.callback(invoke_without_command=True)
def config_default(ctx: typer.Context):
    """Print the effective configuration when no subcommand is given."""
    if ctx.invoked_subcommand is None:
        _print_config()


@config_app.command("init")
def config_init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Replace an existing config file")
    ] = False,
):
    """Write a commented config template to the config path."""
    from ..config import CONFIG_PATH

    if CONFIG_PATH.exists() and not force:
        rprint(f"[yellow]Config already exists:[/yellow] {CONFIG_PATH}")
        rprint("[dim]Pass --force to replace it[/dim]")
        raise typer.Exit(1)

    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(CONFIG_TEMPLATE)
    rprint(f"[green]✓[/green] Wrote [bold]{CONFIG_PATH}[/bold]")


@config_app.command("show")
def config_show():
    """Print the effective configuration."""
    _print_config()


def _print_config():
    from ..config import (
        CONFIG_PATH,
        get_rename_config,
        get_repositories,
        get_worktree_base_path,
        load_config,
    )

    if not CONFIG_PATH.exists():
        rprint(f"[dim]No config file found at {CONFIG_PATH}; showing defaults[/dim]")
    elif not load_config():
        rprint(f"[dim]{CONFIG_PATH} is empty or unreadable; showing defaults[/dim]")
    else:
        rprint(f"[bold]{CONFIG_PATH}[/bold]")

    repos = get_repositories()
    rprint(f"repositories ({len(repos)}):")
    for repo in repos:
        startup = f"  [dim]$ {repo['startup_command']}[/dim]" if repo["startup_command"] else ""
        rprint(f"  {repo['name']}: {repo['path']}{startup}")
    rprint(f"worktree_base_path: {get_worktree_base_path()}")

    rename = get_rename_config()
    rprint("rename:")
    rprint(f"  poll_interval: {rename['poll_interval']:g}s")
    rprint(f"  timeout: {rename['timeout']:g}s")
    for key in ("history_path", "claude_path", "model"):
        rprint(f"  {key}: {rename[key]}")


@config_app.command("path")
def config_path():
    """Print where the config file lives."""
    from ..config import CONFIG_PATH
    print(CONFIG_PATH)
