"""
Agent command: show Claude Code panes of a session and what they are doing.
"""

from typing import Annotated

import typer
from rich.table import Table

from . import _shared
from ._shared import app, console
from ..agent_detector import AgentState, AgentStateDetector, highest_state
from ..exceptions import CommandError

STATE_STYLES = {
    AgentState.NONE: "dim",
    AgentState.IDLE: "green",
    AgentState.RUNNING: "yellow",
    AgentState.WAITING: "bold red",
}


@app.command()
def agents(
    session: Annotated[str, typer.Argument(help="tmux session name")],
):
    """List Claude Code panes in a session with their detected state."""
    detector = AgentStateDetector(_shared.get_tmux_runner())
    try:
        found = detector.detect_session_agents(session)
    except CommandError as e:
        _shared.fail(f"listing panes of {session}: {e}")
    if found is None:
        _shared.fail(f"no such session: {session}")

    if not found:
        console.print(f"[dim]No Claude Code panes in {session}[/dim]")
        return

    table = Table(title=f"Agents in {session}")
    table.add_column("Pane")
    table.add_column("State")
    table.add_column("Elapsed", justify="right")
    for agent in found:
        style = STATE_STYLES[agent.state]
        table.add_row(agent.pane_id, f"[{style}]{agent.state.label}[/{style}]", agent.elapsed or "-")
    console.print(table)

    overall = highest_state(found)
    console.print(f"Session state: [{STATE_STYLES[overall]}]{overall.label}[/{STATE_STYLES[overall]}]")
