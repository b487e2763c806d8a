"""
Agent state detection from captured pane text.

Finds the panes of a session that are running Claude Code and classifies
each one from its visible screen text. Detection is stateless and purely
heuristic; a classification is a best guess from the last screenful.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional, Tuple

from .agent_patterns import (
    AgentPatterns,
    DEFAULT_PATTERNS,
    find_waiting_phrase,
    is_agent_process,
    is_agent_title,
    last_meaningful_lines,
)
from .exceptions import CommandError
from .logging_config import get_logger
from .protocols import TmuxRunner

logger = get_logger("agent_detector")

PANE_LISTING_FORMAT = "#{pane_id}\t#{pane_title}\t#{pane_current_command}"


class AgentState(IntEnum):
    """What an agent is doing. Higher values take display priority."""

    NONE = 0
    IDLE = 1
    RUNNING = 2
    WAITING = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class PaneInfo:
    """One row of a `list-panes` listing."""

    pane_id: str
    title: str
    command: str


@dataclass(frozen=True)
class AgentInfo:
    """Classification of one agent pane.

    elapsed is only set for RUNNING panes whose status line shows a timer.
    """

    pane_id: str
    state: AgentState
    elapsed: str = ""


def parse_pane_listing(output: str) -> List[PaneInfo]:
    """Parse tab-separated `id, title, command` rows; short rows are skipped."""
    panes = []
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        panes.append(PaneInfo(pane_id=parts[0], title=parts[1], command=parts[2].strip()))
    return panes


def is_agent_pane(pane: PaneInfo, patterns: AgentPatterns = None) -> bool:
    """A pane qualifies by its process name or by its title glyph."""
    return is_agent_process(pane.command, patterns) or is_agent_title(pane.title, patterns)


def classify_content(text: str, patterns: AgentPatterns = None) -> Tuple[AgentState, str]:
    """Classify screen text. First match wins: RUNNING, WAITING, IDLE, NONE.

    Returns:
        Tuple of (state, elapsed). elapsed is "" unless a timer was found.
    """
    patterns = patterns or DEFAULT_PATTERNS
    lines = last_meaningful_lines(text, patterns.max_lines)
    if not lines:
        return AgentState.NONE, ""
    window = "\n".join(lines)

    for regex in (patterns.running_after_separator, patterns.running_time_first):
        match = regex.search(window)
        if match:
            return AgentState.RUNNING, match.group(1).strip()
    if patterns.running_interrupt_only.search(window):
        return AgentState.RUNNING, ""

    if find_waiting_phrase(window, patterns) is not None:
        return AgentState.WAITING, ""

    if patterns.idle_prompt.search(window):
        return AgentState.IDLE, ""

    return AgentState.NONE, ""


def highest_state(agents: Iterable[AgentInfo]) -> AgentState:
    """The highest-priority state among agents (NONE when there are none)."""
    return max((agent.state for agent in agents), default=AgentState.NONE)


class AgentStateDetector:
    """Detects Claude Code panes in tmux sessions and classifies them."""

    def __init__(self, runner: TmuxRunner, patterns: Optional[AgentPatterns] = None):
        self.runner = runner
        self.patterns = patterns or DEFAULT_PATTERNS

    def detect_state(self, pane_id: str) -> Tuple[AgentState, str]:
        """Capture a pane and classify it.

        Raises:
            CommandError: If the pane cannot be captured
        """
        content = self.runner.run("capture-pane", "-p", "-t", pane_id)
        return classify_content(content, self.patterns)

    def detect_session_agents(self, session_name: str) -> Optional[List[AgentInfo]]:
        """Classify every agent pane in a session.

        Returns:
            None if the session does not exist, otherwise one AgentInfo per
            agent pane (possibly empty). Panes whose capture fails are left
            out.

        Raises:
            CommandError: If the panes of an existing session cannot be listed
        """
        try:
            self.runner.run("has-session", "-t", session_name)
        except CommandError:
            return None

        output = self.runner.run("list-panes", "-s", "-t", session_name, "-F", PANE_LISTING_FORMAT)

        agents = []
        for pane in parse_pane_listing(output):
            if not is_agent_pane(pane, self.patterns):
                continue
            try:
                state, elapsed = self.detect_state(pane.pane_id)
            except CommandError as e:
                logger.debug("skipping pane %s: %s", pane.pane_id, e)
                continue
            agents.append(AgentInfo(pane_id=pane.pane_id, state=state, elapsed=elapsed))
        return agents
