"""Git commit and merge operations."""

from pathlib import Path

from gentrail.git.runner import run_git, GitResult


def stage_all(worktree: Path) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return run_git(["add", "-A"], worktree)


def stage_paths(worktree: Path, paths: list[str]) -> GitResult:
    """Stage additions, modifications and deletions under the given paths only."""
    return run_git(["add", "-A", "--", *paths], worktree)


def commit(worktree: Path, message: str, allow_empty: bool = False) -> GitResult:
    """Create a commit with the given message."""
    args = ["commit", "-m", message]
    if allow_empty:
        args.insert(1, "--allow-empty")
    return run_git(args, worktree)


def format_message(subject: str, body: str = "", trailers: dict[str, object] | None = None) -> str:
    """Build a commit message with optional body and trailer block."""
    parts = [subject.strip()]
    if body.strip():
        parts.append(body.strip())
    if trailers:
        parts.append("\n".join(f"{key}: {value}" for key, value in trailers.items()))
    return "\n\n".join(parts) + "\n"


def reset_worktree(worktree: Path) -> bool:
    """
    Reset uncommitted changes in worktree.

    Discards all staged and unstaged changes, removes untracked files.
    Returns True if successful.
    """
    reset = run_git(["reset", "--hard", "HEAD"], worktree)
    if not reset.success:
        return False

    clean = run_git(["clean", "-fd"], worktree)
    return clean.success


def merge_no_ff(worktree: Path, branch: str, message: str) -> GitResult:
    """Merge branch into the branch checked out in worktree with a merge commit."""
    return run_git(["merge", "--no-ff", "-m", message, branch], worktree, timeout=120)


def merge_abort(worktree: Path) -> GitResult:
    return run_git(["merge", "--abort"], worktree)
