"""
Centralized agent detection patterns.

This module holds every glyph, phrase and regex the agent detector uses to
recognise Claude Code panes and classify their screen text. Keeping them
in one table means a new agent/tool profile is a new AgentPatterns value,
not a change to the detector's control flow.
"""

import re
from dataclasses import dataclass, field
from typing import List, Tuple

# One or more "<number><unit>" groups, e.g. "2m 30s" or "45s"
DURATION_GROUP = r"((?:\d+[smh]\s*)+)"


@dataclass(frozen=True)
class AgentPatterns:
    """All patterns used for agent detection and classification.

    Matching is case-sensitive unless noted otherwise.
    """

    # Spinner glyphs Claude Code prints at the start of its status line
    # while a turn is in progress: "✻ Reading file… (esc to interrupt · 2m 30s)"
    spinner_glyphs: str = "✢✽✶✻·"

    # Interrupt hints that prove a spinner line is live even without a timer
    interrupt_hints: Tuple[str, ...] = ("esc", "ctrl+c")

    # Confirmation/permission prompts. Substring match on the retained text.
    waiting_phrases: List[str] = field(default_factory=lambda: [
        "Yes, allow once",
        "Yes, allow always",
        "Yes, don't ask again",
        "Do you trust",
        "Run this command?",
        "Continue?",
        "(Y/n)",
        "(y/N)",
        "[Y/n]",
        "[y/N]",
        "(yes/no)",
    ])

    # Claude Code's input prompt character (U+276F)
    prompt_glyph: str = "❯"

    # pane_current_command values for a Claude Code process (case-insensitive)
    process_names: Tuple[str, ...] = ("node", "claude")

    # Some tmux builds report the CLI's version string instead of its name
    version_pattern: str = r"^\d+\.\d+\.\d+$"

    # Title prefixes: ✳ (U+2733) when idle/ready
    title_glyphs: str = "✳"

    # Title prefixes: animated Braille spinner while busy
    title_ranges: Tuple[Tuple[int, int], ...] = ((0x2800, 0x28FF),)

    # How many non-blank lines from the bottom of the screen are inspected
    max_lines: int = 30

    # -- compiled forms ------------------------------------------------------

    def _spinner_prefix(self) -> str:
        return rf"^[{re.escape(self.spinner_glyphs)}]\s+.+?…?\s*\("

    @property
    def running_after_separator(self) -> re.Pattern:
        """Spinner line whose annotation has the timer after a "·"."""
        return re.compile(self._spinner_prefix() + r"[^)]*·\s*" + DURATION_GROUP, re.MULTILINE)

    @property
    def running_time_first(self) -> re.Pattern:
        """Spinner line whose annotation opens with the timer."""
        return re.compile(self._spinner_prefix() + DURATION_GROUP + r"\s*·", re.MULTILINE)

    @property
    def running_interrupt_only(self) -> re.Pattern:
        """Spinner line with an interrupt hint but no timer."""
        hints = "|".join(re.escape(h) for h in self.interrupt_hints)
        return re.compile(self._spinner_prefix() + rf"[^)]*(?:{hints}) to interrupt", re.MULTILINE)

    @property
    def idle_prompt(self) -> re.Pattern:
        """A line that is optional indentation followed by the prompt glyph."""
        return re.compile(rf"^[^\S\n]*{re.escape(self.prompt_glyph)}", re.MULTILINE)


# Default patterns instance
DEFAULT_PATTERNS = AgentPatterns()


def get_patterns() -> AgentPatterns:
    """Get the agent detection patterns.

    Returns:
        AgentPatterns instance with all pattern tables
    """
    return DEFAULT_PATTERNS


def is_agent_process(command: str, patterns: AgentPatterns = None) -> bool:
    """Check whether a pane's current command is a Claude Code process."""
    patterns = patterns or DEFAULT_PATTERNS
    if command.lower() in patterns.process_names:
        return True
    return re.match(patterns.version_pattern, command) is not None


def is_agent_title(title: str, patterns: AgentPatterns = None) -> bool:
    """Check whether a pane title starts with a Claude Code status glyph."""
    patterns = patterns or DEFAULT_PATTERNS
    if not title:
        return False
    first = title[0]
    if first in patterns.title_glyphs:
        return True
    code = ord(first)
    return any(low <= code <= high for low, high in patterns.title_ranges)


def last_meaningful_lines(text: str, n: int) -> List[str]:
    """Return the last n lines of text that are not blank.

    Lines are returned unmodified and in their original order.
    """
    kept: List[str] = []
    for line in reversed(text.split("\n")):
        if len(kept) >= n:
            break
        if line.strip():
            kept.append(line)
    kept.reverse()
    return kept


def find_waiting_phrase(text: str, patterns: AgentPatterns = None) -> str | None:
    """Return the first confirmation phrase present in text, if any."""
    patterns = patterns or DEFAULT_PATTERNS
    for phrase in patterns.waiting_phrases:
        if phrase in text:
            return phrase
    return None
