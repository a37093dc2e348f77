"""Git branch and history operations."""

from dataclasses import dataclass
from pathlib import Path

from gentrail.git.parse import parse_branch_list
from gentrail.git.runner import run_git, GitResult

# Separators for `git log --format`; unit/record separators never appear in messages.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"


@dataclass(frozen=True)
class CommitInfo:
    """Metadata of a single commit."""
    sha: str
    subject: str
    committed_at: str  # ISO 8601
    message: str = ""


def get_current_branch(worktree: Path) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = run_git(["branch", "--show-current"], worktree)
    if result.success:
        return result.stdout.strip() or None
    return None


def branch_exists(repo: Path, branch: str) -> bool:
    """Check if a local branch exists."""
    result = run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo)
    return result.success


def list_branches(repo: Path, pattern: str | None = None) -> list[str]:
    """List local branches, optionally filtered by a glob pattern.

    Returns an empty list if git fails.
    """
    args = ["branch", "--list"]
    if pattern:
        args.append(pattern)
    result = run_git(args, repo)
    if not result.success:
        return []
    return parse_branch_list(result.stdout)


def delete_branch(repo: Path, branch: str, force: bool = False) -> GitResult:
    """Delete a local branch (-D when force)."""
    return run_git(["branch", "-D" if force else "-d", branch], repo)


def get_commit_sha(worktree: Path, ref: str = "HEAD") -> str | None:
    """Get the SHA of a ref."""
    result = run_git(["rev-parse", "--verify", "--quiet", ref], worktree)
    if result.success:
        return result.stdout.strip() or None
    return None


def is_ancestor(worktree: Path, ancestor: str, descendant: str) -> bool:
    """Check if ancestor is an ancestor of descendant."""
    result = run_git(["merge-base", "--is-ancestor", ancestor, descendant], worktree)
    return result.success


def get_log(
    repo: Path,
    ref: str,
    limit: int | None = 200,
    grep: tuple[str, ...] = (),
) -> list[CommitInfo]:
    """Return commits reachable from ref, newest first. Empty on error.

    limit=None walks the whole history. grep keeps only commits whose
    message matches at least one of the patterns.
    """
    fmt = _FIELD_SEP.join(["%H", "%s", "%cI", "%B"]) + _RECORD_SEP
    args = ["log", f"--format={fmt}"]
    if limit is not None:
        args.insert(1, f"-n{limit}")
    args.extend(f"--grep={pattern}" for pattern in grep)
    result = run_git([*args, ref], repo)
    if not result.success:
        return []

    commits = []
    for record in result.stdout.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        parts = record.split(_FIELD_SEP)
        if len(parts) != 4:
            continue
        sha, subject, committed_at, message = parts
        commits.append(CommitInfo(sha=sha, subject=subject, committed_at=committed_at, message=message))
    return commits


def get_last_commit(repo: Path, ref: str) -> CommitInfo | None:
    """Metadata of the commit ref points at, or None."""
    commits = get_log(repo, ref, limit=1)
    return commits[0] if commits else None


def get_git_common_dir(repo: Path) -> Path | None:
    """Absolute path of the shared .git directory (same for all worktrees)."""
    result = run_git(["rev-parse", "--git-common-dir"], repo)
    if not result.success:
        return None
    path = Path(result.stdout.strip())
    if not path.is_absolute():
        path = (repo / path).resolve()
    return path


def checkout(worktree: Path, ref: str) -> GitResult:
    """Check out an existing branch or ref in worktree."""
    return run_git(["checkout", ref], worktree)
