"""
Orchestrator: one method per CLI subcommand.

Constructed once from the loaded Config; cli.py only parses arguments and
calls exactly one method. Methods print user-facing output and raise
GentrailError subclasses on failure.
"""

import logging
from pathlib import Path
from typing import Callable

from gentrail.agents.claude import ClaudeAgent
from gentrail.beads import BeadsClient
from gentrail.cobbler import Cobbler
from gentrail.lib import stats as stats_lib
from gentrail.lib import tools
from gentrail.lib.config import Config
from gentrail.workflow.cycle import CycleRunner
from gentrail.workflow.generation import Generation, GenerationManager

logger = logging.getLogger(__name__)


def format_generation_table(generations: list[Generation]) -> str:
    if not generations:
        return "No generations."

    rows = []
    for g in generations:
        state = f"{g.state} (running)" if g.running else g.state
        progress = f"{g.cycle}/{g.target}" if g.target else str(g.cycle)
        rows.append((
            "*" if g.current else " ",
            g.name,
            state,
            progress,
            g.last_commit_time[:19].replace("T", " "),
            g.last_commit_subject,
        ))

    headers = (" ", "NAME", "STATE", "CYCLE", "LAST COMMIT", "SUBJECT")
    widths = [max(len(r[i]) for r in rows + [headers]) for i in range(5)]
    lines = []
    for row in [headers] + rows:
        cells = [row[i].ljust(widths[i]) for i in range(5)] + [row[5]]
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


class Orchestrator:
    def __init__(
        self,
        config: Config,
        agent: ClaudeAgent | None = None,
        beads_factory: Callable[[Path, str], BeadsClient] = BeadsClient,
    ):
        self.config = config
        self.cobbler = Cobbler(config.cobbler_path)
        self.beads = beads_factory(config.repo_path, config.beads_dir)
        self.cycles = CycleRunner(config, agent=agent, beads_factory=beads_factory, cobbler=self.cobbler)
        self.generations = GenerationManager(config, cycle_runner=self.cycles, beads_factory=beads_factory)

    # --- project ---

    def init(self) -> None:
        """Initialise the issue tracker and scratch directory."""
        self.beads.init()
        self.cobbler.ensure()
        print(f"Initialized {self.config.repo_path.name}")

    def full_reset(self) -> None:
        """Cobbler, then every non-merged generation, then beads."""
        self.cobbler_reset()
        self.generator_reset()
        self.beads_reset()

    def stats(self) -> None:
        print(stats_lib.format_stats(stats_lib.collect_stats(self.config)))

    def build(self) -> None:
        _echo(tools.build(self.config))

    def lint(self) -> None:
        _echo(tools.lint(self.config))

    def install(self) -> None:
        _echo(tools.install(self.config))

    def clean(self) -> None:
        removed = tools.clean(self.config)
        print(f"Removed {len(removed)} path(s)")

    def credentials(self) -> None:
        path = tools.extract_credentials(self.config)
        print(f"Credentials written to {path}")

    # --- measure / stitch ---

    def measure(self) -> None:
        result = self.cycles.measure(self.config.repo_path)
        _echo(result.stdout)

    def measure_prompt(self) -> None:
        print(self.cycles.measure_prompt(self.config.repo_path))

    def stitch(self) -> None:
        done = self.cycles.stitch(self.config.repo_path)
        print(f"Completed {len(done)} task(s)")
        for task in done:
            print(f"  {task.id}: {task.title}")

    # --- generator ---

    def generator_start(self) -> None:
        gen = self.generations.start()
        print(f"Started {gen.name} at {gen.worktree}")

    def generator_run(self, cycles: int | None = None) -> None:
        results = self.generations.run(cycles)
        for r in results:
            print(f"cycle {r.cycle}: {r.diffstat.summary()} ({len(r.tasks_run)} task(s)) {r.commit_sha[:8]}")

    def generator_resume(self) -> None:
        results = self.generations.resume()
        if not results:
            print("Nothing to resume")
        for r in results:
            print(f"cycle {r.cycle}: {r.diffstat.summary()} ({len(r.tasks_run)} task(s)) {r.commit_sha[:8]}")

    def generator_stop(self) -> None:
        gen = self.generations.stop()
        print(f"Merged {gen.name} into {self.config.main_branch} after {gen.cycle} cycle(s)")

    def generator_list(self) -> None:
        print(format_generation_table(self.generations.list_generations()))

    def generator_switch(self, name: str) -> None:
        gen = self.generations.switch(name)
        print(f"Now on {gen.name} ({gen.state}, cycle {gen.cycle})")

    def generator_reset(self, name: str | None = None, force: bool = False) -> None:
        removed = self.generations.reset(name, force=force)
        print(f"Removed {len(removed)} generation(s)")
        for gen_name in removed:
            print(f"  {gen_name}")

    # --- collaborators ---

    def beads_init(self) -> None:
        self.beads.init()

    def beads_reset(self) -> None:
        self.beads.reset()

    def cobbler_reset(self) -> None:
        self.cobbler.reset()


def _echo(text: str) -> None:
    if text.strip():
        print(text.rstrip())
