"""Read and write Claude Code's global ~/.claude.json.

Used to pre-accept the "Do you trust the files in this folder?" dialog for
new worktrees, so claude starts straight at its prompt.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path


class ClaudeConfigEditor:
    """Read and write Claude Code's global JSON config."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def user_level(cls) -> ClaudeConfigEditor:
        """Editor for the user's global config (~/.claude.json)."""
        return cls(Path.home() / ".claude.json")

    def load(self) -> dict:
        """Load the config.

        Returns empty dict if file doesn't exist.
        Raises ValueError on invalid JSON or non-object content.
        """
        if not self.path.exists():
            return {}
        text = self.path.read_text()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} contains non-object JSON")
        return data

    def save(self, config: dict) -> None:
        """Write config to file. Creates parent dirs as needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config, indent=2) + "\n")

    def ensure_directory_trusted(self, directory: str) -> bool:
        """Mark directory as trusted, keeping every other setting.

        Returns True if the file was changed, False if already trusted.
        Raises ValueError if the file or its "projects" field is malformed.
        """
        config = self.load()
        projects = config.get("projects", {})
        if not isinstance(projects, dict):
            raise ValueError(f"{self.path}: 'projects' is not an object")

        project = projects.get(directory)
        if isinstance(project, dict) and project.get("hasTrustDialogAccepted") is True:
            return False

        updated = copy.deepcopy(config)
        entry = dict(project) if isinstance(project, dict) else {}
        entry["hasTrustDialogAccepted"] = True
        updated.setdefault("projects", {})[directory] = entry

        self.save(updated)
        return True
