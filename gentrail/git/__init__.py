"""Git operations for gentrail.

Return type conventions:
- Functions returning GitResult: Caller must check .success (or call
  .check(action) to raise ExternalCommandError) before using output.
  Examples: stage_all(), commit(), add_worktree(), merge_no_ff()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: has_uncommitted_changes(), branch_exists(), is_ancestor()
- Functions returning parsed values (str, int, list, DiffStat): Return
  empty/zero on failure.
  Examples: list_branches() -> [], get_staged_diffstat() -> DiffStat()
"""

from gentrail.git.runner import GitResult, run_git
from gentrail.git.parse import (
    DiffStat,
    parse_branch_list,
    parse_diff_shortstat,
    parse_worktree_list,
    parse_trailers,
)
from gentrail.git.status import (
    has_uncommitted_changes,
)
from gentrail.git.diff import (
    get_staged_diffstat,
    get_range_diffstat,
)
from gentrail.git.branch import (
    CommitInfo,
    get_current_branch,
    branch_exists,
    list_branches,
    delete_branch,
    get_commit_sha,
    is_ancestor,
    get_log,
    get_last_commit,
    get_git_common_dir,
    checkout,
)
from gentrail.git.commit import (
    stage_all,
    stage_paths,
    commit,
    format_message,
    reset_worktree,
    merge_no_ff,
    merge_abort,
)
from gentrail.git.worktree import (
    list_worktrees,
    add_worktree,
    remove_worktree,
    prune_worktrees,
)

__all__ = [
    # runner
    "GitResult",
    "run_git",
    # parse
    "DiffStat",
    "parse_branch_list",
    "parse_diff_shortstat",
    "parse_worktree_list",
    "parse_trailers",
    # status
    "has_uncommitted_changes",
    # diff
    "get_staged_diffstat",
    "get_range_diffstat",
    # branch
    "CommitInfo",
    "get_current_branch",
    "branch_exists",
    "list_branches",
    "delete_branch",
    "get_commit_sha",
    "is_ancestor",
    "get_log",
    "get_last_commit",
    "get_git_common_dir",
    "checkout",
    # commit
    "stage_all",
    "stage_paths",
    "commit",
    "format_message",
    "reset_worktree",
    "merge_no_ff",
    "merge_abort",
    # worktree
    "list_worktrees",
    "add_worktree",
    "remove_worktree",
    "prune_worktrees",
]
