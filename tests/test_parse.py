"""Tests for gentrail.git.parse module."""

from pathlib import Path

from gentrail.git.parse import (
    DiffStat,
    parse_branch_list,
    parse_diff_shortstat,
    parse_trailers,
    parse_worktree_list,
)


class TestParseBranchList:
    """Test parse_branch_list."""

    def test_strips_markers(self):
        assert parse_branch_list("  main\n* current\n+ other\n") == ["main", "current", "other"]

    def test_empty_input(self):
        assert parse_branch_list("") == []

    def test_skips_blank_lines(self):
        assert parse_branch_list("main\n\n  \nfeature\n") == ["main", "feature"]

    def test_generation_names(self):
        text = "  generation-20260214.0\n* generation-20260214.1\n+ generation-20260215.10\n"
        assert parse_branch_list(text) == [
            "generation-20260214.0",
            "generation-20260214.1",
            "generation-20260215.10",
        ]

    def test_only_one_marker_stripped(self):
        # A name can't start with '*' but the parser must not eat more than one marker
        assert parse_branch_list("* +odd") == ["+odd"]

    def test_none_input(self):
        assert parse_branch_list(None) == []


class TestParseDiffShortstat:
    """Test parse_diff_shortstat."""

    def test_full_output(self):
        stat = parse_diff_shortstat(" 5 files changed, 100 insertions(+), 20 deletions(-)\n")
        assert stat == DiffStat(files_changed=5, insertions=100, deletions=20)

    def test_insertions_only(self):
        stat = parse_diff_shortstat(" 3 files changed, 42 insertions(+)\n")
        assert stat == DiffStat(3, 42, 0)

    def test_deletions_only(self):
        stat = parse_diff_shortstat(" 2 files changed, 7 deletions(-)\n")
        assert stat == DiffStat(2, 0, 7)

    def test_empty(self):
        assert parse_diff_shortstat("") == DiffStat(0, 0, 0)

    def test_single_file(self):
        stat = parse_diff_shortstat(" 1 file changed, 1 insertion(+), 1 deletion(-)\n")
        assert stat == DiffStat(1, 1, 1)

    def test_garbage_yields_zero(self):
        assert parse_diff_shortstat("fatal: not a git repository") == DiffStat()

    def test_non_string_yields_zero(self):
        assert parse_diff_shortstat(None) == DiffStat()

    def test_fields_never_negative(self):
        stat = parse_diff_shortstat("-3 files changed")
        assert stat.files_changed >= 0


class TestDiffStat:
    """Test DiffStat helpers."""

    def test_is_empty(self):
        assert DiffStat().is_empty()
        assert not DiffStat(1, 0, 0).is_empty()

    def test_summary_plural(self):
        assert DiffStat(3, 42, 0).summary() == "3 files changed, +42 -0"

    def test_summary_singular(self):
        assert DiffStat(1, 1, 1).summary() == "1 file changed, +1 -1"


class TestParseWorktreeList:
    """Test parse_worktree_list."""

    def test_maps_branches_to_paths(self):
        text = (
            "worktree /repo\n"
            "HEAD abc123\n"
            "branch refs/heads/main\n"
            "\n"
            "worktree /wt/generation-20260214.0\n"
            "HEAD def456\n"
            "branch refs/heads/generation-20260214.0\n"
            "\n"
            "worktree /wt/detached\n"
            "HEAD 789abc\n"
            "detached\n"
        )
        assert parse_worktree_list(text) == {
            "main": Path("/repo"),
            "generation-20260214.0": Path("/wt/generation-20260214.0"),
        }

    def test_empty(self):
        assert parse_worktree_list("") == {}

    def test_path_with_spaces(self):
        text = "worktree /my repo/wt\nbranch refs/heads/feature\n"
        assert parse_worktree_list(text) == {"feature": Path("/my repo/wt")}


class TestParseTrailers:
    """Test parse_trailers."""

    def test_reads_last_paragraph(self):
        message = "[gen] cycle 2: 1 file changed, +3 -0\n\n- bd-1 (P1): thing\n\nGeneration-Cycle: 2\n"
        assert parse_trailers(message) == {"Generation-Cycle": "2"}

    def test_multiple_trailers(self):
        message = "[gen] start\n\nGeneration-Cycle: 0\nGeneration-Target: 0\n"
        assert parse_trailers(message) == {"Generation-Cycle": "0", "Generation-Target": "0"}

    def test_subject_only(self):
        assert parse_trailers("Key: value") == {}

    def test_prose_last_paragraph(self):
        assert parse_trailers("subject\n\nJust some text.\nGeneration-Cycle: 3\n") == {}

    def test_empty(self):
        assert parse_trailers("") == {}
