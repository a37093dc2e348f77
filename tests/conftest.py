"""Shared fixtures: a throwaway git repository and a scripted agent."""

import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from gentrail.agents.claude import AgentResult
from gentrail.lib.config import Config

FIXED_DAY = datetime(2026, 2, 14, 9, 30)


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout


class FakeAgent:
    """Writes one note file per call into the working tree.

    Calls whose 1-based number is in fail_on still write their file (a
    partial change) and then report failure.
    """

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    def run(self, prompt, cwd, log_file=None):
        self.calls.append((prompt, cwd))
        n = len(self.calls)
        notes = Path(cwd) / "notes"
        notes.mkdir(exist_ok=True)
        (notes / f"{n}.txt").write_text(f"call {n}\n")
        if n in self.fail_on:
            return AgentResult(False, 1, "", "agent gave up\n", command=("fake-agent",))
        return AgentResult(True, 0, "ok", "", command=("fake-agent",))


@pytest.fixture
def repo(tmp_path):
    """A git repository on branch main with one commit."""
    path = tmp_path / "project"
    path.mkdir()
    git(path, "init", "-b", "main")
    git(path, "config", "user.name", "Gentrail Tests")
    git(path, "config", "user.email", "tests@example.com")
    git(path, "config", "commit.gpgsign", "false")
    (path / "README.md").write_text("# project\n")
    git(path, "add", "-A")
    git(path, "commit", "-m", "initial")
    return path


@pytest.fixture
def config(repo, tmp_path):
    return Config(repo_path=repo, cobbler_dir=str(tmp_path / "scratch"))
