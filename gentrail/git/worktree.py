"""Git worktree operations."""

from pathlib import Path

from gentrail.git.parse import parse_worktree_list
from gentrail.git.runner import run_git, GitResult


def list_worktrees(repo: Path) -> dict[str, Path]:
    """Map of branch name -> worktree path. Empty on error."""
    result = run_git(["worktree", "list", "--porcelain"], repo)
    if not result.success:
        return {}
    return parse_worktree_list(result.stdout)


def add_worktree(repo: Path, path: Path, branch: str, start_point: str | None = None) -> GitResult:
    """Check out branch at path.

    With start_point, the branch is created from it (`-b`); otherwise the
    existing branch is checked out.
    """
    if start_point is not None:
        args = ["worktree", "add", "-b", branch, str(path), start_point]
    else:
        args = ["worktree", "add", str(path), branch]
    return run_git(args, repo, timeout=120)


def remove_worktree(repo: Path, path: Path, force: bool = False) -> GitResult:
    args = ["worktree", "remove"]
    if force:
        args.append("--force")
    args.append(str(path))
    return run_git(args, repo)


def prune_worktrees(repo: Path) -> GitResult:
    """Drop administrative entries for worktrees whose directory is gone."""
    return run_git(["worktree", "prune"], repo)
