"""
Read Claude Code's prompt history.

Claude Code appends one JSON object per submitted prompt to
~/.claude/history.jsonl:

    {"display": "fix the login redirect", "timestamp": 1760000000000,
     "project": "/repos/web-south-korea", "sessionId": "3f1c..."}

The rename watcher polls this file for the first prompt typed in a new
worktree.
"""

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import HistoryParseError

CLAUDE_HISTORY_PATH = Path.home() / ".claude" / "history.jsonl"

# Prompts shorter than this ("y", "ok") are not a task description
MIN_PROMPT_LENGTH = 3


@dataclass
class HistoryEntry:
    """A single interaction from Claude Code history."""
    display: str
    timestamp_ms: int
    project: Optional[str]
    session_id: Optional[str]


def parse_history(text: str) -> List[HistoryEntry]:
    """Parse newline-delimited JSON history text.

    Blank lines, malformed lines and non-object lines are skipped.

    Raises:
        HistoryParseError: If the text is not blank but no line parses
    """
    entries: List[HistoryEntry] = []
    saw_content = False
    parsed_any = False

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        saw_content = True
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        parsed_any = True
        if not isinstance(data, dict):
            continue
        try:
            timestamp_ms = int(data.get("timestamp") or 0)
        except (TypeError, ValueError, OverflowError):
            continue
        entries.append(HistoryEntry(
            display=str(data.get("display") or ""),
            timestamp_ms=timestamp_ms,
            project=data.get("project"),
            session_id=data.get("sessionId"),
        ))

    if saw_content and not parsed_any:
        raise HistoryParseError("no valid JSON lines in history")
    return entries


def find_first_prompt(
    entries: Iterable[HistoryEntry], project_path: str, after_ms: int
) -> Optional[HistoryEntry]:
    """Earliest prompt for project_path made strictly after after_ms.

    Prompts shorter than MIN_PROMPT_LENGTH (after stripping) are ignored.
    """
    first: Optional[HistoryEntry] = None
    for entry in entries:
        if entry.project != project_path or entry.timestamp_ms <= after_ms:
            continue
        if len(entry.display.strip()) < MIN_PROMPT_LENGTH:
            continue
        if first is None or entry.timestamp_ms < first.timestamp_ms:
            first = entry
    return first


class HistoryFileReader:
    """Reads history.jsonl, re-reading only when its mtime or size changes.

    Thread-safe: a lock protects the cache so several watchers running in
    a ThreadPoolExecutor can share one reader.
    """

    def __init__(self, history_path: Path = CLAUDE_HISTORY_PATH):
        self._path = Path(history_path)
        self._lock = threading.Lock()
        self._cached_mtime: float = 0.0
        self._cached_size: int = -1
        self._cached_text: str = ""

    @property
    def path(self) -> Path:
        return self._path

    def read_history_file(self) -> str:
        """Return the whole history text.

        Raises:
            OSError: If the file is missing or unreadable
        """
        stat = self._path.stat()
        with self._lock:
            if stat.st_mtime == self._cached_mtime and stat.st_size == self._cached_size:
                return self._cached_text
            text = self._path.read_text(encoding="utf-8", errors="replace")
            self._cached_text = text
            self._cached_mtime = stat.st_mtime
            self._cached_size = stat.st_size
            return text
