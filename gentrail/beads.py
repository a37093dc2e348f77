"""
Beads issue-tracker integration.

Thin wrapper around the `bd` CLI. The measure phase asks the agent to file
proposed tasks in beads; the stitch phase reads the ready queue back from
here and closes tasks as the agent completes them.
"""

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from gentrail.lib.errors import ExternalCommandError

logger = logging.getLogger(__name__)

BD_BINARY = "bd"
BD_TIMEOUT = 60


@dataclass(frozen=True)
class Task:
    """A ready work item from the tracker."""
    id: str
    title: str
    description: str = ""
    priority: int = 2
    depends_on: tuple[str, ...] = ()


def _dependency_ids(raw) -> tuple[str, ...]:
    ids = []
    for dep in raw or []:
        if isinstance(dep, str):
            ids.append(dep)
        elif isinstance(dep, dict):
            dep_id = dep.get("depends_on_id") or dep.get("id")
            if dep_id:
                ids.append(str(dep_id))
    return tuple(ids)


def parse_ready_tasks(output: str) -> list[Task]:
    """Parse `bd ready --json` output.

    Raises:
        ValueError: If output is not a JSON list of issues
    """
    text = output.strip()
    if not text:
        return []
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("issues", [])
    if not isinstance(data, list):
        raise ValueError(f"expected a list of issues, got {type(data).__name__}")

    tasks = []
    for item in data:
        if not isinstance(item, dict) or "id" not in item:
            continue
        try:
            priority = int(item.get("priority", 2))
        except (TypeError, ValueError):
            priority = 2
        tasks.append(Task(
            id=str(item["id"]),
            title=str(item.get("title", "")),
            description=str(item.get("description") or ""),
            priority=priority,
            depends_on=_dependency_ids(item.get("dependencies") or item.get("depends_on")),
        ))
    return tasks


class BeadsClient:
    """Runs `bd` commands in a working directory."""

    def __init__(self, cwd: Path, beads_dir: str = ".beads", timeout: int = BD_TIMEOUT):
        self.cwd = cwd
        self.beads_dir = beads_dir
        self.timeout = timeout

    def _bd(self, args: list[str], action: str) -> str:
        cmd = [BD_BINARY, *args]
        logger.debug(f"[BEADS] {' '.join(cmd)} (cwd={self.cwd})")
        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ExternalCommandError(cmd, 127, f"'{BD_BINARY}' is not installed", action) from None
        except subprocess.TimeoutExpired:
            raise ExternalCommandError(cmd, -1, f"timed out after {self.timeout}s", action) from None

        if result.returncode != 0:
            raise ExternalCommandError(cmd, result.returncode, result.stderr, action)
        return result.stdout

    def is_initialized(self) -> bool:
        return (self.cwd / self.beads_dir).is_dir()

    def init(self) -> None:
        """Initialise the tracker (no-op if already initialised)."""
        if self.is_initialized():
            logger.info(f"[BEADS] Already initialized in {self.cwd}")
            return
        self._bd(["init"], "initializing beads")
        logger.info(f"[BEADS] Initialized in {self.cwd}")

    def reset(self) -> None:
        """Clear issue history by removing the tracker directory and re-initialising."""
        path = self.cwd / self.beads_dir
        if path.exists():
            shutil.rmtree(path)
            logger.info(f"[BEADS] Removed {path}")
        self._bd(["init"], "re-initializing beads")

    def ready(self) -> list[Task]:
        """Tasks with no open blockers."""
        output = self._bd(["ready", "--json"], "listing ready tasks")
        try:
            return parse_ready_tasks(output)
        except ValueError as e:
            raise ExternalCommandError([BD_BINARY, "ready", "--json"], 0, str(e), "parsing ready tasks") from e

    def claim(self, task_id: str) -> None:
        self._bd(["update", task_id, "--status", "in_progress"], f"claiming {task_id}")

    def close(self, task_id: str, reason: str = "") -> None:
        args = ["close", task_id]
        if reason:
            args += ["--reason", reason]
        self._bd(args, f"closing {task_id}")
