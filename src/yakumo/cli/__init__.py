"""
CLI interface for Yakumo using Typer.

Commands live in submodules and register themselves on the shared app.
"""

# Import shared state (apps, console, helpers) first
from ._shared import app, main_callback  # noqa: F401

# Import submodules to register their commands with the Typer apps
from . import session  # noqa: F401
from . import agents  # noqa: F401
from . import rename  # noqa: F401
from . import worktree  # noqa: F401
from . import config  # noqa: F401


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
