"""Working tree status."""

from pathlib import Path

from gentrail.git.runner import run_git


def has_uncommitted_changes(worktree: Path) -> bool:
    """True if worktree has staged, unstaged or untracked changes.

    A tree git cannot read counts as dirty: it is not a safe point to resume
    or merge from.
    """
    result = run_git(["status", "--porcelain"], worktree)
    if not result.success:
        return True
    return bool(result.stdout.strip())
