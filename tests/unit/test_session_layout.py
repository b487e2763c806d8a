"""
Unit tests for the tmux session layout manager.

All tmux traffic goes through FakeTmuxRunner, so these tests check the
exact command sequence without a tmux server.
"""

import pytest

from yakumo.exceptions import CommandError, LayoutError
from yakumo.session_layout import (
    BACKGROUND_WINDOW,
    MAIN_SESSION_NAME,
    MAIN_WINDOW,
    Pane,
    PaneArea,
    SessionLayout,
    SessionLayoutManager,
    build_session_layout,
    parse_pane_ids,
    parse_window_list,
)
from yakumo.testing.fakes import FakeTmuxRunner

from tests.fixtures import BACKGROUND_IDS, MAIN_IDS, new_session_outputs

WT = "/repos/web-south-korea"


def manager_for(runner):
    return SessionLayoutManager(runner=runner, home_directory="/home/dev")


def missing(*names):
    """errors dict making has-session fail for the given names."""
    return {("has-session", "-t", name): "can't find session" for name in names}


class TestBuildSessionLayout:

    def test_assigns_panes_by_position(self):
        layout = build_session_layout("s", list(MAIN_IDS), list(BACKGROUND_IDS))
        assert layout.center_1 == Pane(PaneArea.CENTER, 1, "%1")
        assert layout.top_right_1 == Pane(PaneArea.TOP_RIGHT, 1, "%2")
        assert layout.bottom_right_1 == Pane(PaneArea.BOTTOM_RIGHT, 1, "%3")
        assert layout.center_2.pane_id == "%4"
        assert layout.center_3.pane_id == "%5"
        assert layout.bottom_right_2.pane_id == "%6"
        assert layout.bottom_right_3.pane_id == "%7"
        assert layout.is_new
        assert len(layout.panes()) == 7

    @pytest.mark.parametrize("main, bg", [
        (["%1", "%2"], list(BACKGROUND_IDS)),
        (list(MAIN_IDS), ["%4", "%5", "%6"]),
        (list(MAIN_IDS) + ["%9"], list(BACKGROUND_IDS)),
    ])
    def test_wrong_counts_raise(self, main, bg):
        with pytest.raises(LayoutError, match="expected"):
            build_session_layout("s", main, bg)

    def test_name_only_layout(self):
        layout = SessionLayout(session_name="s")
        assert not layout.is_new
        assert layout.panes() == []

    def test_pane_label(self):
        assert Pane(PaneArea.BOTTOM_RIGHT, 2, "%6").label == "bottom-right-2"

    def test_parse_pane_ids(self):
        assert parse_pane_ids("%1\n%2\n\n") == ["%1", "%2"]


class TestHasSession:

    def test_exists(self):
        assert manager_for(FakeTmuxRunner()).has_session("web") is True

    def test_missing(self):
        runner = FakeTmuxRunner(errors=missing("web"))
        assert manager_for(runner).has_session("web") is False


class TestResolveSessionName:

    def test_prefers_directory_name(self):
        runner = FakeTmuxRunner()
        lookups = []
        name = manager_for(runner).resolve_session_name(WT, lambda p: lookups.append(p) or "shoji/x")
        assert name == "web-south-korea"
        assert lookups == []

    def test_falls_back_to_branch_slug(self):
        runner = FakeTmuxRunner(errors=missing("web-south-korea"))
        name = manager_for(runner).resolve_session_name(WT, lambda p: "shoji/fix-login")
        assert name == "fix-login"

    def test_slug_session_missing_returns_directory_name(self):
        runner = FakeTmuxRunner(errors=missing("web-south-korea", "fix-login"))
        name = manager_for(runner).resolve_session_name(WT, lambda p: "shoji/fix-login")
        assert name == "web-south-korea"

    def test_no_lookup_returns_directory_name(self):
        runner = FakeTmuxRunner(errors=missing("web-south-korea"))
        assert manager_for(runner).resolve_session_name(WT) == "web-south-korea"

    def test_lookup_failure_is_not_fatal(self):
        def broken(path):
            raise CommandError("git", ["symbolic-ref"], "not a git repository")

        runner = FakeTmuxRunner(errors=missing("web-south-korea"))
        assert manager_for(runner).resolve_session_name(WT, broken) == "web-south-korea"

    def test_branch_without_slash_is_its_own_slug(self):
        runner = FakeTmuxRunner(errors=missing("web-south-korea"))
        assert manager_for(runner).resolve_session_name(WT, lambda p: "fix-login") == "fix-login"


class TestCreateSessionLayout:

    def test_command_sequence(self):
        runner = FakeTmuxRunner(outputs=new_session_outputs("web"))
        layout = manager_for(runner).create_session_layout("web", WT)

        assert runner.calls == [
            ("new-session", "-d", "-s", "web", "-c", WT),
            ("rename-window", "-t", "web:0", MAIN_WINDOW),
            ("split-window", "-h", "-t", f"web:{MAIN_WINDOW}", "-c", WT, "-p", "25"),
            ("split-window", "-v", "-t", f"web:{MAIN_WINDOW}.1", "-c", WT),
            ("list-panes", "-t", f"web:{MAIN_WINDOW}", "-F", "#{pane_id}"),
            ("new-window", "-t", "web", "-n", BACKGROUND_WINDOW, "-c", WT),
            ("split-window", "-v", "-t", f"web:{BACKGROUND_WINDOW}", "-c", WT),
            ("split-window", "-v", "-t", f"web:{BACKGROUND_WINDOW}", "-c", WT),
            ("split-window", "-v", "-t", f"web:{BACKGROUND_WINDOW}", "-c", WT),
            ("list-panes", "-t", f"web:{BACKGROUND_WINDOW}", "-F", "#{pane_id}"),
        ]
        assert layout.session_name == "web"
        assert [p.pane_id for p in layout.panes()] == list(MAIN_IDS + BACKGROUND_IDS)

    def test_startup_command_runs_before_splits(self):
        runner = FakeTmuxRunner(outputs=new_session_outputs("web"))
        manager_for(runner).create_session_layout("web", WT, "npm install")
        assert runner.calls[1] == ("run-shell", "-c", WT, "npm install")

    def test_startup_command_failure_is_not_fatal(self):
        runner = FakeTmuxRunner(
            outputs=new_session_outputs("web"),
            errors={("run-shell", "-c", WT, "npm install"): "exit 1"},
        )
        layout = manager_for(runner).create_session_layout("web", WT, "npm install")
        assert layout.is_new

    def test_step_failure_names_step(self):
        runner = FakeTmuxRunner(
            outputs=new_session_outputs("web"),
            errors={("new-window", "-t", "web", "-n", BACKGROUND_WINDOW, "-c", WT): "boom"},
        )
        with pytest.raises(LayoutError, match="creating background window"):
            manager_for(runner).create_session_layout("web", WT)
        assert not runner.calls_for("kill-session")

    def test_wrong_pane_count_raises(self):
        runner = FakeTmuxRunner(outputs=new_session_outputs("web", main_ids=["%1", "%2"]))
        with pytest.raises(LayoutError, match="expected 3"):
            manager_for(runner).create_session_layout("web", WT)


class TestSelectWorktreeSession:

    def test_existing_session_switches(self):
        runner = FakeTmuxRunner()
        layout = manager_for(runner).select_worktree_session(WT)

        assert layout == SessionLayout(session_name="web-south-korea")
        assert runner.calls[-2:] == [
            ("switch-client", "-t", "web-south-korea"),
            ("select-window", "-t", f"web-south-korea:{MAIN_WINDOW}"),
        ]
        assert not runner.calls_for("new-session")

    def test_renamed_session_found_by_slug(self):
        runner = FakeTmuxRunner(errors=missing("web-south-korea"))
        layout = manager_for(runner).select_worktree_session(WT, branch_lookup=lambda p: "shoji/fix-login")
        assert layout.session_name == "fix-login"
        assert runner.called("switch-client", "-t", "fix-login")

    def test_creates_missing_session(self):
        outputs = new_session_outputs("web-south-korea")
        runner = FakeTmuxRunner(outputs=outputs, errors=missing("web-south-korea"))
        layout = manager_for(runner).select_worktree_session(WT, startup_command="make")

        assert layout.is_new
        assert layout.center_1.pane_id == "%1"
        assert runner.called("run-shell", "-c", WT, "make")
        assert runner.called("switch-client", "-t", "web-south-korea")

    def test_creation_failure_is_wrapped(self):
        runner = FakeTmuxRunner(errors={
            **missing("web-south-korea"),
            ("new-session", "-d", "-s", "web-south-korea", "-c", WT): "duplicate session",
        })
        with pytest.raises(LayoutError, match="creating session layout"):
            manager_for(runner).select_worktree_session(WT)

    def test_switch_failure_raises(self):
        runner = FakeTmuxRunner(errors={("switch-client", "-t", "web-south-korea"): "no client"})
        with pytest.raises(LayoutError, match="switching to session"):
            manager_for(runner).select_worktree_session(WT)


class TestSessionHelpers:

    def test_current_session_name_uses_tmux_pane(self, monkeypatch):
        monkeypatch.setenv("TMUX_PANE", "%3")
        runner = FakeTmuxRunner(outputs={
            ("display-message", "-p", "-t", "%3", "#{session_name}"): "web\n",
        })
        assert manager_for(runner).current_session_name() == "web"

    def test_current_session_name_without_tmux_pane(self, monkeypatch):
        monkeypatch.delenv("TMUX_PANE", raising=False)
        runner = FakeTmuxRunner(outputs={("display-message", "-p", "#{session_name}"): "web\n"})
        assert manager_for(runner).current_session_name() == "web"

    def test_is_current_session_false_on_error(self, monkeypatch):
        monkeypatch.delenv("TMUX_PANE", raising=False)
        runner = FakeTmuxRunner(errors={("display-message", "-p", "#{session_name}"): "no server"})
        assert manager_for(runner).is_current_session("web") is False

    def test_rename_session_raises_command_error(self):
        runner = FakeTmuxRunner(errors={("rename-session", "-t", "a", "b"): "duplicate"})
        with pytest.raises(CommandError):
            manager_for(runner).rename_session("a", "b")

    def test_kill_session(self):
        runner = FakeTmuxRunner()
        manager_for(runner).kill_session("web")
        assert runner.calls == [("kill-session", "-t", "web")]

    def test_send_keys(self):
        runner = FakeTmuxRunner()
        manager_for(runner).send_keys("%1", "claude")
        assert runner.calls == [("send-keys", "-t", "%1", "claude", "Enter")]

    def test_select_pane_failure(self):
        runner = FakeTmuxRunner(errors={("select-pane", "-t", "%1"): "gone"})
        with pytest.raises(LayoutError):
            manager_for(runner).select_pane("%1")


class TestMainSession:

    def test_creates_when_missing(self):
        runner = FakeTmuxRunner(errors=missing(MAIN_SESSION_NAME))
        manager_for(runner).switch_to_main_session()

        assert runner.called("new-session", "-d", "-s", MAIN_SESSION_NAME, "-c", "/home/dev")
        assert runner.calls_for("send-keys")
        assert runner.calls[-1] == ("switch-client", "-t", MAIN_SESSION_NAME)

    def test_reuses_existing(self):
        runner = FakeTmuxRunner()
        manager_for(runner).switch_to_main_session()
        assert not runner.calls_for("new-session")

    def test_banner_failure_ignored(self):
        runner = FakeTmuxRunner(errors=missing(MAIN_SESSION_NAME))
        runner.errors[("send-keys", "-t", MAIN_SESSION_NAME,
                       "echo 'yakumo - pick a worktree to start working'", "Enter")] = "x"
        manager_for(runner).ensure_main_session()


class TestFindIdleBackgroundPane:

    def _key(self, session):
        return ("list-panes", "-t", f"{session}:{BACKGROUND_WINDOW}", "-F",
                "#{pane_id}\t#{pane_current_command}")

    def test_returns_first_shell(self):
        runner = FakeTmuxRunner(outputs={self._key("web"): "%4\tnode\n%5\tzsh\n%6\tbash\n"})
        assert manager_for(runner).find_idle_background_pane("web") == "%5"

    def test_no_idle_pane(self):
        runner = FakeTmuxRunner(outputs={self._key("web"): "%4\tnode\n%5\tvim\n"})
        with pytest.raises(LayoutError, match="no idle background pane"):
            manager_for(runner).find_idle_background_pane("web")


class TestWorktreeWindow:

    LIST_KEY = ("list-windows", "-F", "#{window_name}\t#{window_index}")

    def test_parse_window_list(self):
        out = "zsh\t0\nweb-south-korea\t3\nweb-south-korea-2\t4\n"
        assert parse_window_list(out, "web-south-korea") == "3"
        assert parse_window_list(out, "web") == ""
        assert parse_window_list("no tab here\n", "no tab here") == ""

    def test_find_window(self):
        runner = FakeTmuxRunner(outputs={self.LIST_KEY: "zsh\t0\nweb-south-korea\t2\n"})
        assert manager_for(runner).find_window("web-south-korea") == "2"

    def test_existing_window_is_selected(self):
        runner = FakeTmuxRunner(outputs={self.LIST_KEY: "zsh\t0\nweb-south-korea\t2\n"})
        assert manager_for(runner).select_worktree_window(WT) == "web-south-korea"
        assert runner.calls[-1] == ("select-window", "-t", "2")
        assert not runner.calls_for("new-window")

    def test_missing_window_is_created(self):
        runner = FakeTmuxRunner(outputs={self.LIST_KEY: "zsh\t0\n"})
        manager_for(runner).select_worktree_window(WT)
        assert runner.calls[-1] == ("new-window", "-n", "web-south-korea", "-c", WT)

    def test_listing_failure_raises(self):
        runner = FakeTmuxRunner(errors={self.LIST_KEY: "no server running"})
        with pytest.raises(LayoutError, match="^listing tmux windows: .*no server running"):
            manager_for(runner).select_worktree_window(WT)
        assert runner.calls == [self.LIST_KEY]

    def test_creation_failure_names_window(self):
        runner = FakeTmuxRunner(errors={("new-window", "-n", "web-south-korea", "-c", WT): "boom"})
        with pytest.raises(LayoutError, match="creating window web-south-korea"):
            manager_for(runner).select_worktree_window(WT)
