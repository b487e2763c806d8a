"""
Test fixtures and factories for yakumo unit tests.

Sample pane captures as Claude Code renders them, history.jsonl builders
and a ready-made fake tmux layout for a freshly created session.
"""

import json
from typing import Dict, Iterable, Optional, Tuple

# -- pane captures -------------------------------------------------------------

PANE_RUNNING_TIMER_AFTER_HINT = """\
> fix the login redirect

⏺ Reading the auth middleware first.

✻ Reading file… (esc to interrupt · 2m 30s · file.go)

"""

PANE_RUNNING_TIMER_FIRST = """\
⏺ Update(src/auth.py)
  ⎿  Updated src/auth.py with 3 additions

✻ Editing file… (1m 52s · esc to interrupt)
"""

PANE_RUNNING_NO_TIMER = """\
✶ Thinking… (esc to interrupt)
"""

PANE_RUNNING_CTRL_C = """\
· Compacting conversation… (ctrl+c to interrupt)
"""

PANE_WAITING_TRUST = """\
 Do you trust the files in this folder?

 /repos/web-south-korea

 ❯ 1. Yes, proceed
   2. No, exit
"""

PANE_WAITING_PERMISSION = """\
 Bash command

   rm -rf build/

 Do you want to proceed?
 ❯ 1. Yes
   2. Yes, allow always for rm in this project
   3. No, and tell Claude what to do differently (esc)
"""

PANE_WAITING_YN = """\
Overwrite existing config? (y/N)
"""

PANE_IDLE = """\
⏺ Done. The redirect now keeps the query string.

╭──────────────────────────────────────────────╮
  ❯ \n╰──────────────────────────────────────────────╯
  ? for shortcuts
"""

PANE_IDLE_BARE = "\n\n  ❯ \n\n"

PANE_SHELL = """\
$ ls
README.md  src  tests
$
"""


def pane_with_scrollback(tail: str, filler_lines: int = 40, filler: str = "✻ old (esc to interrupt · 9s)") -> str:
    """A capture whose filler lines scroll out of the inspected window."""
    return "\n".join([filler] * filler_lines + tail.splitlines())


# -- history.jsonl ---------------------------------------------------------------

def history_line(
    display: str,
    project: str,
    timestamp: int,
    session_id: Optional[str] = "sess-1",
) -> str:
    record: Dict[str, object] = {"display": display, "project": project, "timestamp": timestamp}
    if session_id is not None:
        record["sessionId"] = session_id
    return json.dumps(record)


def history_text(*lines: str) -> str:
    return "\n".join(lines) + "\n"


# -- tmux ------------------------------------------------------------------------

MAIN_IDS = ("%1", "%2", "%3")
BACKGROUND_IDS = ("%4", "%5", "%6", "%7")


def new_session_outputs(
    session: str,
    main_ids: Iterable[str] = MAIN_IDS,
    background_ids: Iterable[str] = BACKGROUND_IDS,
) -> Dict[Tuple[str, ...], str]:
    """FakeTmuxRunner outputs for the two pane listings of create_session_layout."""
    return {
        ("list-panes", "-t", f"{session}:main-window", "-F", "#{pane_id}"): "\n".join(main_ids) + "\n",
        ("list-panes", "-t", f"{session}:background-window", "-F", "#{pane_id}"):
            "\n".join(background_ids) + "\n",
    }
