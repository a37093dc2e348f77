"""Single entry point for invoking git.

Output is parsed by gentrail.git.parse, so git always runs with the C locale
and never prompts for credentials.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from gentrail.lib.errors import ExternalCommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

_GIT_ENV = {"LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"}


@dataclass
class GitResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    args: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def check(self, action: str = "") -> "GitResult":
        """Return self on success, raise ExternalCommandError otherwise."""
        if not self.success:
            raise ExternalCommandError(["git", *self.args], self.returncode, self.stderr, action)
        return self


def run_git(args: list[str], cwd: Path, timeout: int = DEFAULT_TIMEOUT) -> GitResult:
    """Run `git -C cwd <args>`; failures are reported in the result, never raised."""
    cmd = ["git", "-C", str(cwd), *args]
    logger.debug(f"[GIT] {' '.join(args)} (in {cwd})")
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env={**os.environ, **_GIT_ENV},
        )
    except subprocess.TimeoutExpired:
        return GitResult(-1, "", f"git {args[0]} timed out after {timeout}s", timed_out=True, args=tuple(args))
    except FileNotFoundError:
        return GitResult(127, "", "git executable not found", args=tuple(args))
    return GitResult(proc.returncode, proc.stdout, proc.stderr, args=tuple(args))
