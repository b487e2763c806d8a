"""
Pane rotation between the main window and the background window.

A screen area (the center, or the bottom-right corner) has three logical
occupants: one visible slot in main-window and two hidden slots in
background-window. A swap rotates the occupants one step:

    visible <- hidden-1 <- hidden-2 <- visible

implemented as two `swap-pane -d` calls: slot 0 with slot 1, then slot 1
with slot 2. Three swaps bring every occupant back to where it started.
"""

from typing import Sequence, Tuple, TypeVar

from .exceptions import CommandError, LayoutError
from .session_layout import BACKGROUND_WINDOW, MAIN_WINDOW, SessionLayoutManager

T = TypeVar("T")

# (visible, hidden-1, hidden-2) as window.pane-index targets
CENTER_SLOTS: Tuple[str, str, str] = (
    f"{MAIN_WINDOW}.0",
    f"{BACKGROUND_WINDOW}.0",
    f"{BACKGROUND_WINDOW}.1",
)
RIGHT_BELOW_SLOTS: Tuple[str, str, str] = (
    f"{MAIN_WINDOW}.2",
    f"{BACKGROUND_WINDOW}.2",
    f"{BACKGROUND_WINDOW}.3",
)


def rotate_occupants(occupants: Sequence[T]) -> Tuple[T, ...]:
    """Model of one swap: what each slot shows afterwards.

    rotate_occupants(("a", "b", "c")) == ("b", "c", "a")
    """
    if len(occupants) != 3:
        raise ValueError(f"expected 3 slots, got {len(occupants)}")
    return tuple(occupants[1:]) + (occupants[0],)


def swap_steps(session: str, slots: Sequence[str]) -> Tuple[Tuple[str, str], ...]:
    """The (source, destination) pairs one rotation sends to tmux."""
    targets = [f"{session}:{slot}" for slot in slots]
    return tuple((targets[i], targets[i + 1]) for i in range(len(targets) - 1))


def rotate_area(manager: SessionLayoutManager, slots: Sequence[str], label: str) -> None:
    """Rotate one screen area of the client's current session.

    Raises:
        CommandError: If the current session cannot be determined
        LayoutError: If a swap fails; earlier swaps are not undone
    """
    session = manager.current_session_name()
    for step, (source, destination) in enumerate(swap_steps(session, slots), start=1):
        try:
            manager.runner.run("swap-pane", "-d", "-s", source, "-t", destination)
        except CommandError as e:
            raise LayoutError(f"swap {label} step {step}: {e}") from e


def swap_center(manager: SessionLayoutManager) -> None:
    """Bring the next center pane into view."""
    rotate_area(manager, CENTER_SLOTS, "center")


def swap_right_below(manager: SessionLayoutManager) -> None:
    """Bring the next bottom-right pane into view."""
    rotate_area(manager, RIGHT_BELOW_SLOTS, "right-below")
