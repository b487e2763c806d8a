"""
Worktree lifecycle: create a worktree on a placeholder branch, archive it.

New worktrees live at <base>/<repo name>/<slug> on the branch
"<user>/<slug>", where the slug comes from a random country name
("shoji/south-korea"). The placeholder is meant to be replaced by the
branch rename watcher once the first prompt is known.
"""

import random
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .branch_names import slugify
from .exceptions import CommandError, WorktreeError
from .implementations import add_worktree, current_branch, git_user_name, remove_worktree
from .logging_config import get_logger
from .protocols import GitRunner
from .session_layout import SessionLayoutManager

logger = get_logger("worktrees")

MAX_NAME_ATTEMPTS = 5

COUNTRIES = (
    "Afghanistan", "Albania", "Algeria", "Andorra", "Angola", "Argentina",
    "Armenia", "Australia", "Austria", "Azerbaijan", "Bahamas", "Bahrain",
    "Bangladesh", "Barbados", "Belarus", "Belgium", "Belize", "Benin",
    "Bhutan", "Bolivia", "Bosnia and Herzegovina", "Botswana", "Brazil",
    "Brunei", "Bulgaria", "Burkina Faso", "Burundi", "Cambodia", "Cameroon",
    "Canada", "Cape Verde", "Chad", "Chile", "China", "Colombia", "Comoros",
    "Costa Rica", "Côte d'Ivoire", "Croatia", "Cuba", "Cyprus", "Czechia",
    "Denmark", "Djibouti", "Dominica", "Ecuador", "Egypt", "El Salvador",
    "Estonia", "Eswatini", "Ethiopia", "Fiji", "Finland", "France", "Gabon",
    "Gambia", "Georgia (country)", "Germany", "Ghana", "Greece", "Grenada",
    "Guatemala", "Guinea", "Guyana", "Haiti", "Honduras", "Hungary",
    "Iceland", "India", "Indonesia", "Iran", "Iraq", "Ireland", "Israel",
    "Italy", "Jamaica", "Japan", "Jordan", "Kazakhstan", "Kenya", "Kiribati",
    "Kuwait", "Kyrgyzstan", "Laos", "Latvia", "Lebanon", "Lesotho",
    "Liberia", "Libya", "Liechtenstein", "Lithuania", "Luxembourg",
    "Madagascar", "Malawi", "Malaysia", "Maldives", "Mali", "Malta",
    "Mauritania", "Mauritius", "Mexico", "Micronesia", "Moldova", "Monaco",
    "Mongolia", "Montenegro", "Morocco", "Mozambique", "Myanmar", "Namibia",
    "Nauru", "Nepal", "Netherlands", "New Zealand", "Nicaragua", "Niger",
    "Nigeria", "North Macedonia", "Norway", "Oman", "Pakistan", "Palau",
    "Panama", "Papua New Guinea", "Paraguay", "Peru", "Philippines",
    "Poland", "Portugal", "Qatar", "Romania", "Rwanda", "Samoa",
    "San Marino", "São Tomé and Príncipe", "Saudi Arabia", "Senegal",
    "Serbia", "Seychelles", "Sierra Leone", "Singapore", "Slovakia",
    "Slovenia", "Somalia", "South Africa", "South Korea", "Spain",
    "Sri Lanka", "Sudan", "Suriname", "Sweden", "Switzerland", "Syria",
    "Taiwan", "Tajikistan", "Tanzania", "Thailand", "Togo", "Tonga",
    "Trinidad and Tobago", "Tunisia", "Türkiye", "Turkmenistan", "Tuvalu",
    "Uganda", "Ukraine", "United Arab Emirates", "United Kingdom",
    "United States", "Uruguay", "Uzbekistan", "Vanuatu", "Venezuela",
    "Vietnam", "Yemen", "Zambia", "Zimbabwe",
)


@dataclass(frozen=True)
class NewWorktree:
    """A freshly created worktree. created_at is Unix milliseconds."""

    path: str
    branch: str
    created_at: int

    @property
    def session_name(self) -> str:
        return Path(self.path).name


def random_country(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(COUNTRIES)


def placeholder_branch(user_name: str, slug: str) -> str:
    """"<user>/<slug>" with the user name made branch-safe.

    Raises:
        WorktreeError: If nothing usable is left of the user name
    """
    user = slugify(user_name)
    if not user:
        raise WorktreeError("git user.name is not set; cannot name the placeholder branch")
    return f"{user}/{slug}"


def create_worktree(
    runner: GitRunner,
    repo_path: str,
    base_path: Path,
    repo_name: str,
    rng: Optional[random.Random] = None,
    clock: Callable[[], float] = time.time,
) -> NewWorktree:
    """Add a worktree under base_path/repo_name on a placeholder branch.

    Country names already used as a directory are skipped; after
    MAX_NAME_ATTEMPTS collisions the call gives up.

    Raises:
        WorktreeError: If no name is free or `git worktree add` fails
    """
    user_name = git_user_name(runner, repo_path)
    parent = Path(base_path) / repo_name

    for _ in range(MAX_NAME_ATTEMPTS):
        slug = slugify(random_country(rng))
        path = parent / slug
        if path.exists():
            logger.debug("worktree path %s taken, picking another name", path)
            continue

        branch = placeholder_branch(user_name, slug)
        created_at = int(clock() * 1000)
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorktreeError(f"creating parent directory: {e}") from e
        try:
            add_worktree(runner, repo_path, str(path), branch)
        except CommandError as e:
            raise WorktreeError(f"adding worktree: {e}") from e

        logger.info("created worktree %s on %s", path, branch)
        return NewWorktree(path=str(path), branch=branch, created_at=created_at)

    raise WorktreeError(f"no free worktree name under {parent} after {MAX_NAME_ATTEMPTS} attempts")


def archive_worktree(
    runner: GitRunner,
    repo_path: str,
    worktree_path: str,
    layout_manager: Optional[SessionLayoutManager] = None,
) -> None:
    """Kill the worktree's session, remove the worktree and its directory.

    The session goes first: processes running inside the worktree would
    make `git worktree remove` fail.

    Raises:
        WorktreeError: If git refuses to remove the worktree
    """
    if layout_manager is not None:
        session = layout_manager.resolve_session_name(
            worktree_path, branch_lookup=lambda p: current_branch(runner, p)
        )
        if layout_manager.has_session(session):
            try:
                layout_manager.kill_session(session)
            except CommandError as e:
                logger.warning("could not kill session %s: %s", session, e)

    try:
        remove_worktree(runner, repo_path, worktree_path)
    except CommandError as e:
        raise WorktreeError(f"removing worktree: {e}") from e

    # git leaves untracked build output behind
    leftover = Path(worktree_path)
    if leftover.exists():
        shutil.rmtree(leftover, ignore_errors=True)
