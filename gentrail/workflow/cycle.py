"""
Measure/stitch cycle.

One cycle = measure -> stitch -> commit:

    measure   build the traceability graph, ask the agent to file tasks
    stitch    run ready tasks through the agent, dependencies first
    commit    stage everything and record a cycle commit

A cycle is atomic from the generation's point of view: either the commit
lands (and the cycle counter, stored as a commit trailer, advances) or an
exception propagates and nothing is committed.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from gentrail.agents.claude import AgentResult, ClaudeAgent
from gentrail.beads import BeadsClient, Task
from gentrail.cobbler import Cobbler
from gentrail.git import (
    DiffStat,
    commit,
    format_message,
    get_commit_sha,
    get_staged_diffstat,
    stage_all,
)
from gentrail.lib.config import Config
from gentrail.lib.dag import DependencyDeadlock, dependency_batches
from gentrail.lib.prompts import build_section, render_prompt
from gentrail.lib.traceability import build_graph, format_report

logger = logging.getLogger(__name__)

CYCLE_TRAILER = "Generation-Cycle"
TARGET_TRAILER = "Generation-Target"


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one committed cycle."""
    cycle: int
    tasks_run: tuple[str, ...] = ()
    diffstat: DiffStat = field(default_factory=DiffStat)
    commit_sha: str = ""


def order_tasks(tasks: list[Task]) -> list[Task]:
    """Dependencies first, then priority, then id.

    Tasks caught in a dependency cycle are dropped with a warning; the rest
    still run.
    """
    ordered: list[Task] = []
    try:
        for batch in dependency_batches(sorted(tasks, key=lambda t: (t.priority, t.id))):
            ordered.extend(batch)
    except DependencyDeadlock as e:
        logger.warning(f"[CYCLE] Skipping tasks in a dependency cycle: {', '.join(e.stuck)}")
    return ordered


def _format_tasks(tasks: list[Task]) -> str:
    return "\n".join(f"- {t.id} (P{t.priority}): {t.title}" for t in tasks)


class CycleRunner:
    """Runs the measure and stitch phases in a working tree."""

    def __init__(
        self,
        config: Config,
        agent: ClaudeAgent | None = None,
        beads_factory: Callable[[Path, str], BeadsClient] = BeadsClient,
        cobbler: Cobbler | None = None,
    ):
        self.config = config
        self.agent = agent or ClaudeAgent(config.agent_command, config.agent_timeout)
        self.beads_factory = beads_factory
        self.cobbler = cobbler or Cobbler(config.cobbler_path)

    def _beads(self, root: Path) -> BeadsClient:
        return self.beads_factory(root, self.config.beads_dir)

    def _ready_tasks(self, root: Path) -> list[Task]:
        beads = self._beads(root)
        if not beads.is_initialized():
            logger.warning(f"[CYCLE] Beads not initialized in {root}, no tasks available")
            return []
        return beads.ready()

    def coverage_report(self, root: Path) -> str:
        return format_report(build_graph(self.config, root))

    def measure_prompt(self, root: Path, cycle_label: str = "standalone measure") -> str:
        """Render the measure prompt for the tree at root."""
        ready = self._ready_tasks(root)
        return render_prompt(
            "measure",
            project_name=self.config.repo_path.name,
            cycle_label=cycle_label,
            coverage_report=self.coverage_report(root),
            ready_tasks_section=build_section(
                _format_tasks(ready), "## Open tasks", empty_msg="No open tasks."
            ),
            max_tasks=self.config.max_tasks_per_cycle,
        )

    def measure(self, root: Path, cycle_label: str = "standalone measure") -> AgentResult:
        """Ask the agent to assess the tree and file tasks.

        Raises:
            ExternalCommandError: If the agent fails
        """
        prompt = self.measure_prompt(root, cycle_label)
        logger.info(f"[CYCLE] Measure: {cycle_label}")
        result = self.agent.run(prompt, root, log_file=self.cobbler.artifact_path("measure.log"))
        return result.check(f"measure ({cycle_label})")

    def stitch(self, root: Path) -> list[Task]:
        """Run up to max_tasks_per_cycle ready tasks through the agent.

        Returns the tasks completed. The first agent failure halts the phase;
        the failing task stays claimed for the next attempt.

        Raises:
            ExternalCommandError: If beads or the agent fails
        """
        tasks = order_tasks(self._ready_tasks(root))[: self.config.max_tasks_per_cycle]
        if not tasks:
            logger.info("[CYCLE] Stitch: no ready tasks")
            return []

        beads = self._beads(root)
        report = self.coverage_report(root)
        done = []
        for task in tasks:
            logger.info(f"[CYCLE] Stitch: {task.id} {task.title}")
            beads.claim(task.id)
            prompt = render_prompt(
                "stitch",
                project_name=self.config.repo_path.name,
                task_id=task.id,
                task_title=task.title,
                task_description=task.description or "(no description)",
                coverage_report=report,
            )
            result = self.agent.run(prompt, root, log_file=self.cobbler.artifact_path(f"stitch-{task.id}.log"))
            result.check(f"stitching {task.id}")
            beads.close(task.id, reason="completed by stitch")
            done.append(task)
        return done

    def run_cycle(self, name: str, worktree: Path, cycle: int) -> CycleResult:
        """Run measure and stitch in worktree, then commit cycle `cycle`.

        Raises:
            ExternalCommandError: If any phase or the commit fails
        """
        label = f"{name} cycle {cycle}"
        logger.info(f"[CYCLE] Starting {label}")

        self.measure(worktree, label)
        tasks = self.stitch(worktree)

        stage_all(worktree).check(f"staging {label}")
        diffstat = get_staged_diffstat(worktree)
        message = format_message(
            f"[{name}] cycle {cycle}: {diffstat.summary()}",
            body=_format_tasks(tasks),
            trailers={CYCLE_TRAILER: cycle},
        )
        commit(worktree, message, allow_empty=True).check(f"committing {label}")

        sha = get_commit_sha(worktree) or ""
        logger.info(f"[CYCLE] Committed {label} ({diffstat.summary()}) {sha[:8]}")
        return CycleResult(
            cycle=cycle,
            tasks_run=tuple(t.id for t in tasks),
            diffstat=diffstat,
            commit_sha=sha,
        )
