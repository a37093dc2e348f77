"""
Parsers for git command output.

These feed listings, commit messages and diagnostics, so they degrade to
empty/zero results on anything they do not recognise instead of raising.
"""

import re
from dataclasses import dataclass
from pathlib import Path

BRANCH_MARKERS = ("*", "+")

FILES_CHANGED_RE = re.compile(r'(\d+)\s+files?\s+changed')
INSERTIONS_RE = re.compile(r'(\d+)\s+insertions?\(\+\)')
DELETIONS_RE = re.compile(r'(\d+)\s+deletions?\(-\)')


@dataclass(frozen=True)
class DiffStat:
    """Summary counts from `git diff --shortstat`."""
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0

    def is_empty(self) -> bool:
        return self.files_changed == 0 and self.insertions == 0 and self.deletions == 0

    def summary(self) -> str:
        noun = "file" if self.files_changed == 1 else "files"
        return f"{self.files_changed} {noun} changed, +{self.insertions} -{self.deletions}"


def parse_branch_list(text: str) -> list[str]:
    """Parse `git branch` output into branch names.

    Leading whitespace and a single `*` (current) or `+` (checked out in a
    linked worktree) marker are stripped. Blank lines are dropped; order is
    kept.
    """
    branches = []
    for line in (text or "").splitlines():
        name = line.lstrip()
        if name[:1] in BRANCH_MARKERS:
            name = name[1:].lstrip()
        name = name.strip()
        if name:
            branches.append(name)
    return branches


def _count(pattern: re.Pattern, text: str) -> int:
    match = pattern.search(text)
    if not match:
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        return 0


def parse_diff_shortstat(text: str) -> DiffStat:
    """Parse the one-line summary of `git diff --shortstat`.

    " 5 files changed, 100 insertions(+), 20 deletions(-)" -> DiffStat(5, 100, 20)

    Each group is optional; absent groups count as zero.
    """
    if not isinstance(text, str):
        return DiffStat()
    return DiffStat(
        files_changed=_count(FILES_CHANGED_RE, text),
        insertions=_count(INSERTIONS_RE, text),
        deletions=_count(DELETIONS_RE, text),
    )


def parse_worktree_list(text: str) -> dict[str, Path]:
    """Parse `git worktree list --porcelain` into {branch: path}.

    Only entries on local branches (refs/heads/*) are returned; detached and
    bare entries are skipped.
    """
    result: dict[str, Path] = {}
    current_path: Path | None = None
    branch: str | None = None

    def flush() -> None:
        if current_path is not None and branch is not None and branch.startswith("refs/heads/"):
            result[branch.removeprefix("refs/heads/")] = current_path

    for line in (text or "").splitlines():
        if not line.strip():
            continue
        if line.startswith("worktree "):
            flush()
            current_path = Path(line.split(" ", 1)[1])
            branch = None
        elif line.startswith("branch "):
            branch = line.split(" ", 1)[1].strip()

    flush()
    return result


TRAILER_RE = re.compile(r'^([A-Za-z][A-Za-z0-9-]*):\s*(.*?)\s*$')


def parse_trailers(message: str) -> dict[str, str]:
    """Parse the trailer block (last paragraph of "Key: value" lines) of a commit message.

    Returns {} if the last paragraph is not made entirely of trailers.
    """
    paragraphs = [p for p in (message or "").strip().split("\n\n") if p.strip()]
    if len(paragraphs) < 2:
        return {}

    trailers: dict[str, str] = {}
    for line in paragraphs[-1].splitlines():
        match = TRAILER_RE.match(line)
        if not match:
            return {}
        trailers[match.group(1)] = match.group(2)
    return trailers
