"""Diff summaries, parsed from `git diff --shortstat`."""

from pathlib import Path

from gentrail.git.parse import DiffStat, parse_diff_shortstat
from gentrail.git.runner import run_git


def _shortstat(worktree: Path, args: list[str]) -> DiffStat:
    result = run_git(["diff", "--shortstat", *args], worktree)
    return parse_diff_shortstat(result.stdout if result.success else "")


def get_staged_diffstat(worktree: Path) -> DiffStat:
    """What the next commit in worktree would record. Zero on error."""
    return _shortstat(worktree, ["--cached"])


def get_range_diffstat(worktree: Path, ref_range: str) -> DiffStat:
    """Change between two refs (e.g. "main...generation-20260214.0"). Zero on error."""
    return _shortstat(worktree, [ref_range])
