"""Tests for gentrail.git module."""

import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

from gentrail.git.runner import run_git, GitResult
from gentrail.git.status import has_uncommitted_changes
from gentrail.git.branch import (
    get_current_branch,
    get_log,
    get_git_common_dir,
    list_branches,
)
from gentrail.git.commit import commit, format_message
from gentrail.git.diff import get_staged_diffstat
from gentrail.git.parse import DiffStat
from gentrail.git.worktree import add_worktree
from gentrail.lib.errors import ExternalCommandError


class TestGitResult:
    """Test GitResult dataclass."""

    def test_success_when_returncode_zero(self):
        result = GitResult(returncode=0, stdout="ok", stderr="")
        assert result.success is True

    def test_failure_when_returncode_nonzero(self):
        result = GitResult(returncode=1, stdout="", stderr="error")
        assert result.success is False

    def test_failure_when_timed_out(self):
        result = GitResult(returncode=0, stdout="ok", stderr="", timed_out=True)
        assert result.success is False

    def test_check_raises_with_context(self):
        result = GitResult(returncode=128, stdout="", stderr="fatal: bad ref\n", args=("checkout", "nope"))
        with pytest.raises(ExternalCommandError) as exc:
            result.check("checking out nope")
        assert exc.value.command == ["git", "checkout", "nope"]
        assert str(exc.value) == "checking out nope: 'git checkout nope' failed (exit 128): fatal: bad ref"

    def test_check_returns_self(self):
        result = GitResult(returncode=0, stdout="", stderr="")
        assert result.check("anything") is result


class TestRunGit:
    """Test run_git function."""

    @patch("gentrail.git.runner.subprocess.run")
    def test_returns_result_on_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="output", stderr="")
        result = run_git(["status"], Path("/tmp"))
        assert result.success
        assert result.stdout == "output"
        assert result.args == ("status",)

    @patch("gentrail.git.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        result = run_git(["status"], Path("/tmp"))
        assert not result.success
        assert result.timed_out
        assert "timed out" in result.stderr

    @patch("gentrail.git.runner.subprocess.run")
    def test_handles_missing_git(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        result = run_git(["status"], Path("/tmp"))
        assert result.returncode == 127

    @patch("gentrail.git.runner.subprocess.run")
    def test_passes_cwd_with_C_flag(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["status", "--porcelain"], Path("/my/repo"))
        assert mock_run.call_args[0][0] == ["git", "-C", "/my/repo", "status", "--porcelain"]

    @patch("gentrail.git.runner.subprocess.run")
    def test_forces_parseable_output(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["diff", "--shortstat"], Path("/my/repo"))
        env = mock_run.call_args[1]["env"]
        assert env["LC_ALL"] == "C"
        assert env["GIT_TERMINAL_PROMPT"] == "0"


class TestHasUncommittedChanges:
    """Test has_uncommitted_changes function."""

    @patch("gentrail.git.status.run_git")
    def test_returns_false_when_clean(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="", stderr="")
        assert has_uncommitted_changes(Path("/tmp")) is False

    @patch("gentrail.git.status.run_git")
    def test_returns_true_when_dirty(self, mock_run):
        mock_run.return_value = GitResult(returncode=0, stdout="?? new.txt\n", stderr="")
        assert has_uncommitted_changes(Path("/tmp")) is True

    @patch("gentrail.git.status.run_git")
    def test_unreadable_tree_counts_as_dirty(self, mock_run):
        mock_run.return_value = GitResult(returncode=128, stdout="", stderr="fatal: not a git repository")
        assert has_uncommitted_changes(Path("/tmp")) is True


class TestBranchHelpers:
    """Test branch and history helpers."""

    @patch("gentrail.git.branch.run_git")
    def test_list_branches_with_pattern(self, mock_run):
        mock_run.return_value = GitResult(0, "  generation-20260214.0\n* generation-20260214.1\n", "")
        assert list_branches(Path("/r"), "generation-*") == [
            "generation-20260214.0",
            "generation-20260214.1",
        ]
        assert mock_run.call_args[0][0] == ["branch", "--list", "generation-*"]

    @patch("gentrail.git.branch.run_git")
    def test_list_branches_failure_is_empty(self, mock_run):
        mock_run.return_value = GitResult(128, "", "fatal")
        assert list_branches(Path("/r")) == []

    @patch("gentrail.git.branch.run_git")
    def test_detached_head(self, mock_run):
        mock_run.return_value = GitResult(0, "\n", "")
        assert get_current_branch(Path("/r")) is None

    @patch("gentrail.git.branch.run_git")
    def test_get_log_parses_records(self, mock_run):
        stdout = (
            "aaa\x1f[g] cycle 2: x\x1f2026-02-14T10:00:00+00:00\x1f[g] cycle 2: x\n\nGeneration-Cycle: 2\n\x1e\n"
            "bbb\x1f[g] start\x1f2026-02-14T09:00:00+00:00\x1f[g] start\n\x1e\n"
        )
        mock_run.return_value = GitResult(0, stdout, "")
        commits = get_log(Path("/r"), "g")
        assert [c.sha for c in commits] == ["aaa", "bbb"]
        assert commits[0].subject == "[g] cycle 2: x"
        assert "Generation-Cycle: 2" in commits[0].message

    @patch("gentrail.git.branch.run_git")
    def test_get_log_unbounded_with_grep(self, mock_run):
        mock_run.return_value = GitResult(0, "", "")
        get_log(Path("/r"), "g", limit=None, grep=("^Generation-Cycle:", "^Generation-Target:"))
        args = mock_run.call_args[0][0]
        assert not any(a.startswith("-n") for a in args)
        assert args[-3:] == ["--grep=^Generation-Cycle:", "--grep=^Generation-Target:", "g"]

    @patch("gentrail.git.branch.run_git")
    def test_get_log_default_limit(self, mock_run):
        mock_run.return_value = GitResult(0, "", "")
        get_log(Path("/r"), "g")
        assert mock_run.call_args[0][0][:2] == ["log", "-n200"]

    @patch("gentrail.git.branch.run_git")
    def test_common_dir_relative(self, mock_run):
        mock_run.return_value = GitResult(0, ".git\n", "")
        assert get_git_common_dir(Path("/r")) == Path("/r/.git").resolve()


class TestCommitHelpers:
    """Test commit helpers."""

    def test_format_message_with_trailers(self):
        message = format_message("[g] cycle 1: 0 files changed, +0 -0", body="- bd-1", trailers={"Generation-Cycle": 1})
        assert message == "[g] cycle 1: 0 files changed, +0 -0\n\n- bd-1\n\nGeneration-Cycle: 1\n"

    def test_format_message_subject_only(self):
        assert format_message("subject") == "subject\n"

    @patch("gentrail.git.commit.run_git")
    def test_commit_allow_empty(self, mock_run):
        mock_run.return_value = GitResult(0, "", "")
        commit(Path("/wt"), "msg", allow_empty=True)
        assert mock_run.call_args[0][0] == ["commit", "--allow-empty", "-m", "msg"]

    @patch("gentrail.git.diff.run_git")
    def test_staged_diffstat(self, mock_run):
        mock_run.return_value = GitResult(0, " 2 files changed, 5 insertions(+)\n", "")
        assert get_staged_diffstat(Path("/wt")) == DiffStat(2, 5, 0)

    @patch("gentrail.git.diff.run_git")
    def test_staged_diffstat_on_failure(self, mock_run):
        mock_run.return_value = GitResult(128, " 2 files changed\n", "fatal")
        assert get_staged_diffstat(Path("/wt")) == DiffStat()


class TestWorktreeHelpers:
    """Test worktree helpers."""

    @patch("gentrail.git.worktree.run_git")
    def test_add_new_branch(self, mock_run):
        mock_run.return_value = GitResult(0, "", "")
        add_worktree(Path("/r"), Path("/wt/g"), "g", start_point="main")
        assert mock_run.call_args[0][0] == ["worktree", "add", "-b", "g", "/wt/g", "main"]

    @patch("gentrail.git.worktree.run_git")
    def test_add_existing_branch(self, mock_run):
        mock_run.return_value = GitResult(0, "", "")
        add_worktree(Path("/r"), Path("/wt/g"), "g")
        assert mock_run.call_args[0][0] == ["worktree", "add", "/wt/g", "g"]
