"""
Configuration for Yakumo.

Settings live in ~/.config/yakumo/config.yaml (override the location with
YAKUMO_CONFIG). Every accessor falls back to environment variables and then
to built-in defaults, so a missing or broken file never stops the tool.

Config file format:
    worktree_base_path: ~/yakumo   # new worktrees go to <base>/<repo>/<slug>

    repositories:
      - name: web
        path: ~/src/web
        startup_command: npm install

    rename:
      poll_interval: 2        # seconds between history polls
      timeout: 600            # seconds before the watch gives up
      history_path: ~/.claude/history.jsonl
      claude_path: claude
      model: haiku

Environment variable fallbacks:
    YAKUMO_WORKTREE_BASE
    YAKUMO_RENAME_POLL_INTERVAL
    YAKUMO_RENAME_TIMEOUT
    YAKUMO_HISTORY_PATH
    YAKUMO_CLAUDE_PATH
    YAKUMO_CLAUDE_MODEL
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .logging_config import get_logger

logger = get_logger("config")

CONFIG_PATH = Path(
    os.environ.get("YAKUMO_CONFIG", Path.home() / ".config" / "yakumo" / "config.yaml")
)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_RENAME_TIMEOUT = 600.0
DEFAULT_HISTORY_PATH = Path.home() / ".claude" / "history.jsonl"
DEFAULT_CLAUDE_PATH = "claude"
DEFAULT_CLAUDE_MODEL = "haiku"
DEFAULT_WORKTREE_BASE = Path.home() / "yakumo"


def load_config() -> Dict[str, Any]:
    """Load the YAML config file.

    Returns:
        Config dict, or {} when the file is missing, unreadable, invalid
        YAML, or not a mapping at the top level.
    """
    if not CONFIG_PATH.exists():
        return {}
    try:
        with open(CONFIG_PATH) as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, e)
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def _float_setting(section: Dict[str, Any], key: str, env_var: str, default: float) -> float:
    raw = section.get(key, os.environ.get(env_var))
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("invalid %s=%r, using %s", key, raw, default)
        return default
    return value if value > 0 else default


def get_rename_config() -> Dict[str, Any]:
    """Settings for the branch rename watcher.

    Returns:
        Dict with poll_interval, timeout (seconds), history_path (Path),
        claude_path and model.
    """
    section = load_config().get("rename") or {}
    if not isinstance(section, dict):
        section = {}

    history = section.get("history_path") or os.environ.get("YAKUMO_HISTORY_PATH")
    return {
        "poll_interval": _float_setting(
            section, "poll_interval", "YAKUMO_RENAME_POLL_INTERVAL", DEFAULT_POLL_INTERVAL
        ),
        "timeout": _float_setting(
            section, "timeout", "YAKUMO_RENAME_TIMEOUT", DEFAULT_RENAME_TIMEOUT
        ),
        "history_path": Path(history).expanduser() if history else DEFAULT_HISTORY_PATH,
        "claude_path": section.get("claude_path")
        or os.environ.get("YAKUMO_CLAUDE_PATH", DEFAULT_CLAUDE_PATH),
        "model": section.get("model")
        or os.environ.get("YAKUMO_CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
    }


def get_repositories() -> List[Dict[str, str]]:
    """Return configured repositories with expanded, absolute paths.

    Entries without a path are skipped.
    """
    repos = load_config().get("repositories") or []
    if not isinstance(repos, list):
        return []

    result = []
    for repo in repos:
        if not isinstance(repo, dict) or not repo.get("path"):
            continue
        path = str(Path(str(repo["path"])).expanduser())
        result.append({
            "name": str(repo.get("name") or Path(path).name),
            "path": path,
            "startup_command": str(repo.get("startup_command") or ""),
        })
    return result


def get_worktree_base_path() -> Path:
    """Directory new worktrees are created under, as <base>/<repo>/<slug>."""
    raw = load_config().get("worktree_base_path") or os.environ.get("YAKUMO_WORKTREE_BASE")
    return Path(str(raw)).expanduser() if raw else DEFAULT_WORKTREE_BASE


def get_repository(name_or_path: str) -> Optional[Dict[str, str]]:
    """Look up a configured repository by name, or by its root path."""
    target = Path(name_or_path).expanduser()
    for repo in get_repositories():
        if repo["name"] == name_or_path or Path(repo["path"]) == target:
            return repo
    return None


def find_repository(worktree_path: str) -> Optional[Dict[str, str]]:
    """Find the configured repository a worktree belongs to.

    Matches the repository root itself, any path below it, or a worktree
    created by yakumo directly under <worktree base>/<repo name>.
    """
    target = Path(worktree_path).expanduser()
    base = get_worktree_base_path()
    for repo in get_repositories():
        root = Path(repo["path"])
        if target == root or root in target.parents:
            return repo
        if target.parent == base / repo["name"]:
            return repo
    return None
