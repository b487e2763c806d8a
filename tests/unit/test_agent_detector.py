"""
Tests for the agent state detector.
"""

import pytest

from yakumo.agent_detector import (
    AgentInfo,
    AgentState,
    AgentStateDetector,
    PANE_LISTING_FORMAT,
    PaneInfo,
    classify_content,
    highest_state,
    is_agent_pane,
    parse_pane_listing,
)
from yakumo.exceptions import CommandError
from yakumo.testing.fakes import FakeTmuxRunner

from tests import fixtures


class TestClassifyContent:
    """Tests for classify_content priority and extraction."""

    def test_running_with_timer_after_hint(self):
        assert classify_content(fixtures.PANE_RUNNING_TIMER_AFTER_HINT) == (AgentState.RUNNING, "2m 30s")

    def test_running_with_timer_first(self):
        assert classify_content(fixtures.PANE_RUNNING_TIMER_FIRST) == (AgentState.RUNNING, "1m 52s")

    def test_running_without_timer(self):
        assert classify_content(fixtures.PANE_RUNNING_NO_TIMER) == (AgentState.RUNNING, "")

    def test_running_ctrl_c_hint(self):
        assert classify_content(fixtures.PANE_RUNNING_CTRL_C) == (AgentState.RUNNING, "")

    def test_waiting_trust_dialog(self):
        assert classify_content(fixtures.PANE_WAITING_TRUST) == (AgentState.WAITING, "")

    def test_waiting_permission_prompt(self):
        assert classify_content(fixtures.PANE_WAITING_PERMISSION)[0] == AgentState.WAITING

    def test_waiting_yes_no(self):
        assert classify_content(fixtures.PANE_WAITING_YN)[0] == AgentState.WAITING

    def test_idle_prompt_box(self):
        assert classify_content(fixtures.PANE_IDLE) == (AgentState.IDLE, "")

    def test_idle_bare_prompt(self):
        assert classify_content(fixtures.PANE_IDLE_BARE) == (AgentState.IDLE, "")

    def test_shell_output_is_none(self):
        assert classify_content(fixtures.PANE_SHELL) == (AgentState.NONE, "")

    @pytest.mark.parametrize("text", ["", "\n\n", "   \n\t\n"])
    def test_blank_is_none(self, text):
        assert classify_content(text) == (AgentState.NONE, "")

    def test_running_beats_waiting(self):
        text = "Continue?\n✻ Working… (3s · esc to interrupt)"
        assert classify_content(text) == (AgentState.RUNNING, "3s")

    def test_waiting_beats_idle(self):
        text = "Run this command?\n❯ 1. Yes"
        assert classify_content(text)[0] == AgentState.WAITING

    def test_old_lines_scroll_out_of_window(self):
        tail = "\n".join(["plain output"] * 29 + ["  ❯ "])
        text = fixtures.pane_with_scrollback(tail)
        assert classify_content(text) == (AgentState.IDLE, "")

    def test_lines_inside_window_still_count(self):
        tail = "\n".join(["plain output"] * 28 + ["  ❯ "])
        text = fixtures.pane_with_scrollback(tail)
        assert classify_content(text) == (AgentState.RUNNING, "9s")

    def test_blank_lines_do_not_count_toward_window(self):
        tail = "\n\n".join(["plain output"] * 28 + ["  ❯ "])
        text = fixtures.pane_with_scrollback(tail)
        assert classify_content(text)[0] == AgentState.RUNNING


class TestHighestState:

    def test_empty_is_none(self):
        assert highest_state([]) == AgentState.NONE

    def test_picks_highest(self):
        agents = [
            AgentInfo("%1", AgentState.IDLE),
            AgentInfo("%2", AgentState.WAITING),
            AgentInfo("%3", AgentState.RUNNING, "5s"),
        ]
        assert highest_state(agents) == AgentState.WAITING

    def test_state_ordering(self):
        assert AgentState.NONE < AgentState.IDLE < AgentState.RUNNING < AgentState.WAITING


class TestParsePaneListing:

    def test_parses_rows(self):
        output = "%1\t✳ Claude Code\tnode\n%2\tzsh\tzsh\n"
        assert parse_pane_listing(output) == [
            PaneInfo("%1", "✳ Claude Code", "node"),
            PaneInfo("%2", "zsh", "zsh"),
        ]

    def test_skips_short_rows(self):
        assert parse_pane_listing("%1\tonly-two\n\n") == []

    def test_title_may_be_empty(self):
        assert parse_pane_listing("%1\t\tclaude") == [PaneInfo("%1", "", "claude")]

    def test_is_agent_pane_by_title_only(self):
        assert is_agent_pane(PaneInfo("%1", "⠐ Working", "zsh")) is True


class TestAgentStateDetector:

    def _listing_key(self, session):
        return ("list-panes", "-s", "-t", session, "-F", PANE_LISTING_FORMAT)

    def test_detect_state_captures_pane(self):
        runner = FakeTmuxRunner(outputs={
            ("capture-pane", "-p", "-t", "%1"): fixtures.PANE_RUNNING_TIMER_FIRST,
        })
        detector = AgentStateDetector(runner)
        assert detector.detect_state("%1") == (AgentState.RUNNING, "1m 52s")

    def test_detect_state_raises_on_capture_failure(self):
        runner = FakeTmuxRunner(errors={("capture-pane", "-p", "-t", "%9"): "can't find pane"})
        with pytest.raises(CommandError):
            AgentStateDetector(runner).detect_state("%9")

    def test_missing_session_returns_none(self):
        runner = FakeTmuxRunner(errors={("has-session", "-t", "gone"): "no session"})
        assert AgentStateDetector(runner).detect_session_agents("gone") is None

    def test_filters_and_classifies_agent_panes(self):
        runner = FakeTmuxRunner(outputs={
            self._listing_key("web"): (
                "%1\t✳ Fix login\tnode\n"
                "%2\tzsh\tzsh\n"
                "%3\tbuild\t2.0.75\n"
                "%4\t⠂ Thinking\tzsh\n"
            ),
            ("capture-pane", "-p", "-t", "%1"): fixtures.PANE_IDLE,
            ("capture-pane", "-p", "-t", "%3"): fixtures.PANE_WAITING_TRUST,
            ("capture-pane", "-p", "-t", "%4"): fixtures.PANE_RUNNING_TIMER_AFTER_HINT,
        })
        agents = AgentStateDetector(runner).detect_session_agents("web")

        assert agents == [
            AgentInfo("%1", AgentState.IDLE),
            AgentInfo("%3", AgentState.WAITING),
            AgentInfo("%4", AgentState.RUNNING, "2m 30s"),
        ]
        assert ("capture-pane", "-p", "-t", "%2") not in runner.calls

    def test_skips_panes_whose_capture_fails(self):
        runner = FakeTmuxRunner(
            outputs={
                self._listing_key("web"): "%1\t\tclaude\n%2\t\tclaude\n",
                ("capture-pane", "-p", "-t", "%2"): fixtures.PANE_IDLE_BARE,
            },
            errors={("capture-pane", "-p", "-t", "%1"): "pane died"},
        )
        agents = AgentStateDetector(runner).detect_session_agents("web")
        assert agents == [AgentInfo("%2", AgentState.IDLE)]

    def test_session_without_agents_is_empty_list(self):
        runner = FakeTmuxRunner(outputs={self._listing_key("web"): "%1\tzsh\tzsh\n"})
        assert AgentStateDetector(runner).detect_session_agents("web") == []

    def test_listing_failure_is_an_error_not_absence(self):
        runner = FakeTmuxRunner(errors={self._listing_key("web"): "server exited unexpectedly"})
        with pytest.raises(CommandError, match="server exited unexpectedly"):
            AgentStateDetector(runner).detect_session_agents("web")
