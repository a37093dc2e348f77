"""
Generation trail lifecycle.

A generation is a git branch named <prefix><YYYYMMDD>.<seq> checked out in its
own worktree under Config.worktrees_path. Nothing about a generation is stored
outside git except two small files in <git-common-dir>/gentrail/:

    current             name of the current generation (like a checkout)
    locks/<name>.lock   run marker (see runner/locking.py)

Everything else is derived on every call:

    merged      branch tip is an ancestor of the main branch
    active      run lock held (running), or worktree present and clean
    suspended   worktree missing or dirty, or the last run was interrupted

The cycle counter and the run target are commit trailers on the generation's
own commits (subject "[<name>] ..."); the newest commit carrying each trailer
wins. The committed history is the checkpoint log.
"""

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from gentrail.beads import BeadsClient
from gentrail.git import (
    add_worktree,
    branch_exists,
    checkout,
    commit,
    delete_branch,
    format_message,
    get_current_branch,
    get_git_common_dir,
    get_last_commit,
    get_log,
    get_range_diffstat,
    get_staged_diffstat,
    has_uncommitted_changes,
    is_ancestor,
    list_branches,
    list_worktrees,
    merge_abort,
    merge_no_ff,
    parse_trailers,
    prune_worktrees,
    remove_worktree,
    reset_worktree,
    stage_all,
    stage_paths,
)
from gentrail.lib.config import Config
from gentrail.lib.errors import (
    ExternalCommandError,
    GenerationExistsError,
    NoRecoverableStateError,
    NotFoundError,
)
from gentrail.lib.ids import generation_sort_key, is_generation_name
from gentrail.runner.locking import (
    LockHeld,
    LockStatus,
    clear_marker,
    generation_lock,
    lock_path,
    lock_status,
)
from gentrail.workflow.cycle import CYCLE_TRAILER, TARGET_TRAILER, CycleResult, CycleRunner
from gentrail.workflow.fsm import (
    ACTIVE,
    MERGED,
    SUSPENDED,
    GenerationFSM,
    InvalidTransition,
)

logger = logging.getLogger(__name__)


@dataclass
class Generation:
    """Snapshot of a generation, derived from git."""
    name: str
    state: str
    cycle: int = 0
    target: int = 0
    worktree: Path | None = None
    running: bool = False
    current: bool = False
    head_sha: str = ""
    last_commit_subject: str = ""
    last_commit_time: str = ""

    @property
    def remaining(self) -> int:
        """Cycles requested by the last run that have not been committed."""
        return max(0, self.target - self.cycle)


class GenerationManager:
    """Start, run, resume, switch, stop, reset and list generations."""

    def __init__(
        self,
        config: Config,
        cycle_runner: CycleRunner | None = None,
        beads_factory: Callable[[Path, str], BeadsClient] = BeadsClient,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.repo = config.repo_path
        self.cycle_runner = cycle_runner or CycleRunner(config, beads_factory=beads_factory)
        self.beads_factory = beads_factory
        self.clock = clock

    # --- bookkeeping paths ---

    @property
    def state_dir(self) -> Path:
        common = get_git_common_dir(self.repo)
        if common is None:
            raise NotFoundError(self.repo, "git repository")
        return common / "gentrail"

    @property
    def lock_dir(self) -> Path:
        return self.state_dir / "locks"

    def worktree_path(self, name: str) -> Path:
        return self.config.worktrees_path / name

    # --- current pointer ---

    def current_name(self) -> str | None:
        """Name of the current generation, or None.

        Auto-clears a stale pointer if the branch no longer exists.
        """
        pointer = self.state_dir / "current"
        if pointer.exists():
            name = pointer.read_text().strip()
            if name and branch_exists(self.repo, name):
                return name
            logger.debug(f"[GEN] Clearing stale current pointer ({name or 'empty'})")
            pointer.unlink()
        return None

    def _set_current(self, name: str) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        (self.state_dir / "current").write_text(name + "\n")

    def _clear_current(self, name: str | None = None) -> None:
        pointer = self.state_dir / "current"
        if not pointer.exists():
            return
        if name is None or pointer.read_text().strip() == name:
            pointer.unlink()

    def _require_current(self) -> str:
        name = self.current_name()
        if name is None:
            raise NoRecoverableStateError(
                "No current generation. Start one with 'gentrail generator start' "
                "or pick one with 'gentrail generator switch NAME'"
            )
        return name

    # --- derivation ---

    def next_generation_name(self, today: datetime | None = None) -> str:
        """Next free <prefix><YYYYMMDD>.<seq> name for the given day."""
        prefix = self.config.generation_prefix
        date = (today or self.clock()).strftime("%Y%m%d")
        used = set()
        for branch in list_branches(self.repo, f"{prefix}{date}.*"):
            if is_generation_name(branch, prefix):
                used.add(generation_sort_key(branch)[1])

        seq = max(used) + 1 if used else 0
        while self.worktree_path(f"{prefix}{date}.{seq}").exists():
            seq += 1
        return f"{prefix}{date}.{seq}"

    def _read_counters(self, name: str) -> tuple[int, int]:
        """(cycle, target) from the newest trailers on the generation's own commits."""
        cycle = target = None
        marker = f"[{name}]"
        trailer_lines = (f"^{CYCLE_TRAILER}:", f"^{TARGET_TRAILER}:")
        for info in get_log(self.repo, name, limit=None, grep=trailer_lines):
            if not info.subject.startswith(marker):
                continue
            trailers = parse_trailers(info.message)
            if cycle is None and CYCLE_TRAILER in trailers:
                cycle = _to_int(trailers[CYCLE_TRAILER])
            if target is None and TARGET_TRAILER in trailers:
                target = _to_int(trailers[TARGET_TRAILER])
            if cycle is not None and target is not None:
                break
        return cycle or 0, target or 0

    def _derive(self, name: str, worktrees: dict[str, Path], current: str | None) -> Generation:
        cycle, target = self._read_counters(name)
        last = get_last_commit(self.repo, name)
        worktree = worktrees.get(name)
        running = False

        if is_ancestor(self.repo, name, self.config.main_branch):
            state = MERGED
        else:
            status = lock_status(self.lock_dir, name)
            if status == LockStatus.RUNNING:
                state, running = ACTIVE, True
            elif worktree is None or not worktree.exists():
                state = SUSPENDED
            elif has_uncommitted_changes(worktree):
                state = SUSPENDED
            elif status == LockStatus.INTERRUPTED:
                state = SUSPENDED
            else:
                state = ACTIVE

        return Generation(
            name=name,
            state=state,
            cycle=cycle,
            target=target,
            worktree=worktree,
            running=running,
            current=name == current,
            head_sha=last.sha if last else "",
            last_commit_subject=last.subject if last else "",
            last_commit_time=last.committed_at if last else "",
        )

    def get(self, name: str) -> Generation | None:
        if not branch_exists(self.repo, name):
            return None
        return self._derive(name, list_worktrees(self.repo), self.current_name())

    def list_generations(self) -> list[Generation]:
        """Every generation branch with its derived state, oldest first."""
        prefix = self.config.generation_prefix
        names = [
            b for b in list_branches(self.repo, self.config.generation_pattern)
            if is_generation_name(b, prefix)
        ]
        worktrees = list_worktrees(self.repo)
        current = self.current_name()
        return [self._derive(n, worktrees, current) for n in sorted(names, key=generation_sort_key)]

    # --- lifecycle ---

    def start(self) -> Generation:
        """Create a new generation from the main branch and make it current.

        Raises:
            GenerationExistsError: If the branch or worktree already exists
            ExternalCommandError: If git fails
        """
        name = self.next_generation_name()
        path = self.worktree_path(name)
        if branch_exists(self.repo, name) or path.exists():
            raise GenerationExistsError(f"Generation {name} already exists")

        fsm = GenerationFSM(name)
        main = self.config.main_branch
        path.parent.mkdir(parents=True, exist_ok=True)
        add_worktree(self.repo, path, name, start_point=main).check(f"creating {name} from {main}")

        # Give the worktree its own tracker if the project uses one; its files
        # belong to the start commit so the new worktree is clean
        if self.beads_factory(self.repo, self.config.beads_dir).is_initialized():
            self.beads_factory(path, self.config.beads_dir).init()
            stage_all(path).check(f"staging tracker files for {name}")

        message = format_message(
            f"[{name}] start",
            body=f"Generation started from {main}.",
            trailers={CYCLE_TRAILER: 0, TARGET_TRAILER: 0},
        )
        commit(path, message, allow_empty=True).check(f"recording start of {name}")

        fsm.fire("start")
        self._set_current(name)
        logger.info(f"[GEN] Started {name} at {path}")
        return self.get(name)

    def run(self, cycles: int | None = None) -> list[CycleResult]:
        """Run `cycles` measure/stitch cycles in the current generation.

        Raises:
            NoRecoverableStateError: If there is no current generation
            InvalidTransition: If the generation is not active
            LockHeld: If another process is running it
            ExternalCommandError: If a cycle fails (generation left suspended)
        """
        n = self.config.cycles if cycles is None else cycles
        if n < 1:
            raise ValueError(f"cycles must be at least 1, got {n}")

        name = self._require_current()
        gen = self.get(name)
        if gen.running:
            raise LockHeld(f"Generation {name} is already running")
        if gen.state != ACTIVE:
            raise InvalidTransition(name, gen.state, "run")

        fsm = GenerationFSM(name, gen.state)
        return self._execute(fsm, gen.worktree, gen.cycle, gen.cycle + n, record_target=True)

    def resume(self) -> list[CycleResult]:
        """Recover an interrupted generation and finish its last run.

        An idle, uninterrupted generation with no cycles left is a no-op.

        Raises:
            NoRecoverableStateError: If no generation can be resumed
        """
        name = self._resume_target()
        gen = self.get(name)
        if gen is None or gen.state == MERGED:
            raise NoRecoverableStateError(f"Generation {name} is not recoverable")
        if gen.running:
            raise NoRecoverableStateError(f"Generation {name} is still running in another process")

        fsm = GenerationFSM(name, gen.state)
        worktree = gen.worktree
        if gen.state == SUSPENDED:
            worktree = self._recover_worktree(gen)
        elif gen.remaining == 0:
            logger.info(f"[GEN] {name} is at cycle {gen.cycle} with nothing to resume")
            return []

        fsm.fire("resume")
        logger.info(f"[GEN] Resuming {name} at cycle {gen.cycle} ({gen.remaining} remaining)")
        return self._execute(fsm, worktree, gen.cycle, gen.target)

    def _resume_target(self) -> str:
        current = self.current_name()
        if current is not None:
            return current

        candidates = [
            g.name for g in self.list_generations()
            if not g.running and (g.state == SUSPENDED or (g.state == ACTIVE and g.remaining))
        ]
        if not candidates:
            raise NoRecoverableStateError("No interrupted generation found")
        if len(candidates) > 1:
            raise NoRecoverableStateError(
                f"Several generations can be resumed ({', '.join(candidates)}); pick one with switch"
            )
        self._set_current(candidates[0])
        return candidates[0]

    def _recover_worktree(self, gen: Generation) -> Path:
        """Bring a suspended generation's worktree back to its last commit."""
        path = gen.worktree or self.worktree_path(gen.name)
        if not path.exists():
            logger.warning(f"[GEN] Worktree for {gen.name} is missing, recreating at {path}")
            prune_worktrees(self.repo).check("pruning stale worktrees")
            add_worktree(self.repo, path, gen.name).check(f"recreating worktree for {gen.name}")
        else:
            self._discard_partial_cycle(gen.name, path)
        clear_marker(self.lock_dir, gen.name)
        return path

    def _discard_partial_cycle(self, name: str, path: Path) -> None:
        """Drop uncommitted changes left by a cycle that did not finish."""
        if not has_uncommitted_changes(path):
            return
        logger.warning(f"[GEN] Discarding partial cycle changes in {path}")
        if not reset_worktree(path):
            raise ExternalCommandError(
                ["git", "reset", "--hard"], 1, "reset or clean failed", f"discarding changes in {name}"
            )

    def _execute(
        self,
        fsm: GenerationFSM,
        worktree: Path,
        cycle: int,
        target: int,
        record_target: bool = False,
    ) -> list[CycleResult]:
        """Run cycles cycle+1..target under the run lock."""
        name = fsm.name
        results = []
        with generation_lock(self.lock_dir, name):
            if record_target:
                message = format_message(
                    f"[{name}] run {target - cycle} cycle(s)",
                    trailers={TARGET_TRAILER: target},
                )
                commit(worktree, message, allow_empty=True).check(f"recording run of {name}")

            for k in range(cycle + 1, target + 1):
                try:
                    result = self.cycle_runner.run_cycle(name, worktree, k)
                except Exception as e:
                    fsm.fire("interrupt")
                    logger.error(f"[GEN] {name}: cycle {k} failed, suspended at cycle {k - 1}: {e}")
                    raise
                fsm.fire("cycle_complete")
                results.append(result)

        logger.info(f"[GEN] {name}: completed {len(results)} cycle(s), now at cycle {target}")
        return results

    def switch(self, name: str) -> Generation:
        """Commit outstanding work in the current generation and make `name` current.

        Raises:
            NoRecoverableStateError: If name does not exist or is merged
            ExternalCommandError: If the commit fails (no switch happens)
        """
        target = self.get(name)
        if target is None:
            raise NoRecoverableStateError(f"No generation named {name}")
        if target.state == MERGED:
            raise NoRecoverableStateError(f"Generation {name} is already merged")

        current = self.current_name()
        if current == name:
            logger.info(f"[GEN] {name} is already current")
            return target

        if current is not None:
            previous = self.get(current)
            if previous.running:
                raise LockHeld(f"Generation {current} is running; wait for it to finish")
            self._commit_outstanding(current, previous.worktree, f"work in progress before switch to {name}")

        if target.worktree is None or not target.worktree.exists():
            path = self.worktree_path(name)
            prune_worktrees(self.repo).check("pruning stale worktrees")
            add_worktree(self.repo, path, name).check(f"checking out {name}")

        self._set_current(name)
        logger.info(f"[GEN] Switched to {name}" + (f" from {current}" if current else ""))
        return self.get(name)

    def _commit_outstanding(self, name: str, worktree: Path | None, reason: str) -> None:
        if worktree is None or not worktree.exists() or not has_uncommitted_changes(worktree):
            return

        stage_all(worktree).check(f"staging outstanding work in {name}")
        diffstat = get_staged_diffstat(worktree)
        message = format_message(f"[{name}] {reason}: {diffstat.summary()}")
        commit(worktree, message).check(f"committing outstanding work in {name}")
        logger.info(f"[GEN] Committed outstanding work in {name} ({diffstat.summary()})")

    def stop(self) -> Generation:
        """Merge the current generation into the main branch.

        The branch is kept (it is how `list_generations` knows the generation
        was merged); the worktree is removed. Uncommitted changes are committed
        first, except those left by an interrupted cycle, which are discarded.

        Raises:
            NoRecoverableStateError: If there is no current generation
            InvalidTransition: If it is already merged
            ExternalCommandError: If the merge fails (generation left suspended)
        """
        name = self._require_current()
        gen = self.get(name)
        if gen.running:
            raise LockHeld(f"Generation {name} is running; wait for it to finish")

        fsm = GenerationFSM(name, gen.state)
        fsm.fire("stop")
        main = self.config.main_branch
        interrupted = lock_status(self.lock_dir, name) == LockStatus.INTERRUPTED

        with generation_lock(self.lock_dir, name):
            # Only finished cycles are merged
            if interrupted and gen.worktree is not None and gen.worktree.exists():
                self._discard_partial_cycle(name, gen.worktree)
            self._commit_outstanding(name, gen.worktree, "final work before merge")

            if get_current_branch(self.repo) != main:
                checkout(self.repo, main).check(f"checking out {main}")

            diffstat = get_range_diffstat(self.repo, f"{main}...{name}")
            message = format_message(
                f"Merge {name} ({gen.cycle} cycle(s))",
                body=diffstat.summary(),
            )
            result = merge_no_ff(self.repo, name, message)
            if not result.success:
                abort = merge_abort(self.repo)
                if not abort.success:
                    logger.warning(f"[GEN] merge --abort failed: {abort.stderr.strip()}")
                fsm.fire("merge_failed")
                result.check(f"merging {name} into {main}")

        fsm.fire("merge_success")
        if gen.worktree is not None and gen.worktree.exists():
            removed = remove_worktree(self.repo, gen.worktree, force=True)
            if not removed.success:
                logger.warning(f"[GEN] Could not remove worktree {gen.worktree}: {removed.stderr.strip()}")
        self._clear_current(name)
        logger.info(f"[GEN] Merged {name} into {main} ({diffstat.summary()})")
        return self.get(name)

    def reset(self, name: str | None = None, force: bool = False) -> list[str]:
        """Destroy one generation (or all of them) and return the names removed.

        Merged generations are skipped when resetting everything, and refused
        when named, unless force is set. Resetting everything also removes
        the configured generated source directories from the main tree.

        Raises:
            NoRecoverableStateError: If name does not exist
            InvalidTransition: If name is merged and force is not set
            LockHeld: If a generation is running
        """
        if name is not None:
            gen = self.get(name)
            if gen is None:
                raise NoRecoverableStateError(f"No generation named {name}")
            targets = [gen]
        else:
            targets = self.list_generations()

        removed = []
        for gen in targets:
            if gen.running:
                raise LockHeld(f"Generation {gen.name} is running; wait for it to finish")
            fsm = GenerationFSM(gen.name, gen.state)
            if gen.state == MERGED and not force:
                if name is not None:
                    raise InvalidTransition(gen.name, gen.state, "reset")
                logger.info(f"[GEN] Keeping merged generation {gen.name}")
                continue

            self._destroy(gen)
            if fsm.can("reset"):
                fsm.fire("reset")
            removed.append(gen.name)

        if name is None:
            self._remove_generated_dirs()
        return removed

    def _destroy(self, gen: Generation) -> None:
        path = gen.worktree or self.worktree_path(gen.name)
        if path.exists():
            remove_worktree(self.repo, path, force=True).check(f"removing worktree of {gen.name}")
        prune_worktrees(self.repo).check("pruning stale worktrees")
        delete_branch(self.repo, gen.name, force=True).check(f"deleting branch {gen.name}")
        lock_path(self.lock_dir, gen.name).unlink(missing_ok=True)
        self._clear_current(gen.name)
        logger.info(f"[GEN] Removed {gen.name}")

    def _remove_generated_dirs(self) -> None:
        """Delete generated source directories and commit their removal."""
        removed = []
        for rel in self.config.generated_dirs:
            path = self.config.resolve(rel)
            if path.exists():
                shutil.rmtree(path)
                removed.append(rel)
                logger.info(f"[GEN] Removed generated directory {path}")
        if not removed:
            return

        stage_paths(self.repo, removed).check("staging removal of generated sources")
        if get_staged_diffstat(self.repo).is_empty():
            return
        message = format_message(
            "Remove generated sources",
            body="\n".join(f"- {rel}" for rel in removed),
        )
        commit(self.repo, message).check("committing removal of generated sources")


def _to_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None
