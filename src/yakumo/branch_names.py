"""
Branch name generation and normalisation.

A worktree starts on a placeholder branch ("shoji/south-korea"). Once the
operator's first prompt is known, the Claude CLI is asked for a short name,
the answer is sanitised into a slug, and the slug is re-attached to the
original namespace ("shoji/fix-login-redirect").
"""

import os
import re
import subprocess
import unicodedata
from typing import Dict, Optional

from .exceptions import CommandError
from .logging_config import get_logger

logger = get_logger("branch_names")

MAX_BRANCH_NAME_LENGTH = 30

SYSTEM_PROMPT = """You are a git branch name generator. Given a task description, generate a concise kebab-case branch name that summarizes the task.

Rules:
- Use lowercase kebab-case (e.g., "fix-login-redirect", "add-user-settings")
- Maximum 30 characters
- No prefixes like "feature/" or "fix/" -- just the descriptive part
- Output ONLY the branch name, nothing else
- No quotes, no explanation, just the raw branch name"""

_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")
_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_MULTI_HYPHEN = re.compile(r"-{2,}")

# Set by Claude Code inside its own shells; a nested `claude -p` refuses to
# run while it is present.
NESTED_SESSION_ENV = "CLAUDECODE"


def slugify(name: str) -> str:
    """Lowercase, hyphenated, ASCII-only form of arbitrary text.

    >>> slugify("São Tomé and Príncipe")
    'sao-tome-and-principe'
    >>> slugify("Georgia (country)")
    'georgia'
    """
    text = _PARENTHETICAL.sub("", name).strip()
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = _WHITESPACE.sub("-", text.lower())
    text = _INVALID_CHARS.sub("", text)
    return _MULTI_HYPHEN.sub("-", text).strip("-")


def sanitize_branch_name(name: str) -> str:
    """slugify(), capped at MAX_BRANCH_NAME_LENGTH.

    Returns "" when nothing usable is left; callers must treat that as an
    error rather than renaming to it.

    >>> sanitize_branch_name("Fix Login Redirect!!")
    'fix-login-redirect'
    """
    text = slugify(name)
    if len(text) > MAX_BRANCH_NAME_LENGTH:
        text = text[:MAX_BRANCH_NAME_LENGTH].rstrip("-")
    return text


def slug_from_branch(branch: str) -> str:
    """Text after the first "/", or the whole branch when there is none.

    "shoji/fix-login" -> "fix-login", "a/b/c" -> "b/c", "main" -> "main"
    """
    _, sep, rest = branch.partition("/")
    return rest if sep else branch


def branch_with_namespace(original_branch: str, slug: str) -> str:
    """Re-attach the namespace of original_branch (before its first "/")."""
    prefix, sep, _ = original_branch.partition("/")
    return f"{prefix}/{slug}" if sep else slug


def _child_env(exclude: str) -> Dict[str, str]:
    return {k: v for k, v in os.environ.items() if k != exclude}


class ClaudeBranchNameGenerator:
    """Asks the Claude CLI in print mode for a branch name."""

    def __init__(
        self,
        claude_path: str = "claude",
        model: str = "haiku",
        timeout: Optional[float] = 60.0,
    ):
        self.claude_path = claude_path
        self.model = model
        self.timeout = timeout

    def build_args(self, prompt: str) -> list:
        full_prompt = f"{SYSTEM_PROMPT}\n\nTask description:\n{prompt}"
        return [
            self.claude_path, "-p", full_prompt,
            "--output-format", "text",
            "--model", self.model,
            "--no-session-persistence",
        ]

    def generate_branch_name(self, prompt: str) -> str:
        """Return the CLI's raw answer with surrounding whitespace removed.

        Raises:
            CommandError: If the CLI cannot be started, times out or exits non-zero
        """
        args = self.build_args(prompt)
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=_child_env(NESTED_SESSION_ENV),
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(self.claude_path, args[1:2], f"timed out after {e.timeout}s") from e
        except (subprocess.SubprocessError, OSError) as e:
            raise CommandError(self.claude_path, args[1:2], str(e)) from e

        if result.returncode != 0:
            raise CommandError(self.claude_path, args[1:2], result.stderr)

        raw = result.stdout.strip()
        logger.debug("claude suggested %r", raw)
        return raw
