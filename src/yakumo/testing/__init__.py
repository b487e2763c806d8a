"""In-memory test doubles for the tmux, git, history and naming capabilities."""

from .fakes import FakeBranchNameGenerator, FakeGitRunner, FakeHistoryReader, FakeTmuxRunner

__all__ = ["FakeBranchNameGenerator", "FakeGitRunner", "FakeHistoryReader", "FakeTmuxRunner"]
