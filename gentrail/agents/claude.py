"""
Claude agent integration for gentrail.

The agent is an opaque boundary: we send a prompt on stdin and keep the
free-form output for the scratch directory. Interpreting that output is the
agent's business (it files tasks in beads and edits files directly).
"""

import logging
import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from gentrail.lib.errors import ExternalCommandError

logger = logging.getLogger(__name__)


@dataclass
class AgentResult:
    success: bool
    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float = 0.0
    command: tuple[str, ...] = ()

    def check(self, action: str) -> "AgentResult":
        """Return self on success, raise ExternalCommandError otherwise."""
        if not self.success:
            raise ExternalCommandError(list(self.command), self.exit_code, self.stderr, action)
        return self


class ClaudeAgent:
    def __init__(self, command: str, timeout: int = 1800):
        self.command = shlex.split(command)
        self.timeout = timeout

    def run(self, prompt: str, cwd: Path, log_file: Path | None = None) -> AgentResult:
        """
        Run the agent with prompt on stdin.

        Passes prompt via stdin to avoid CLI argument length limits.
        """
        cmd = list(self.command)

        # Remove ANTHROPIC_API_KEY so Claude uses OAuth credentials instead
        env = {k: v for k, v in os.environ.items() if k != "ANTHROPIC_API_KEY"}

        logger.info(f"[AGENT] Running {cmd[0]} in {cwd} ({len(prompt)} chars of prompt)")
        start = time.time()
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd),
                input=prompt,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            return AgentResult(
                success=False,
                exit_code=-1,
                stdout="",
                stderr=f"Timeout expired after {self.timeout}s",
                elapsed_seconds=time.time() - start,
                command=tuple(cmd),
            )
        except FileNotFoundError:
            return AgentResult(
                success=False,
                exit_code=127,
                stdout="",
                stderr=f"'{cmd[0]}' is not installed",
                command=tuple(cmd),
            )

        elapsed = time.time() - start
        logger.info(f"[AGENT] {cmd[0]} exited {result.returncode} after {elapsed:.1f}s")

        # Log if requested
        if log_file:
            log_file.write_text(
                f"=== COMMAND ===\n{' '.join(cmd)}\n\n"
                f"=== EXIT CODE ===\n{result.returncode}\n\n"
                f"=== PROMPT ===\n{prompt}\n\n"
                f"=== STDOUT ===\n{result.stdout}\n\n"
                f"=== STDERR ===\n{result.stderr}\n"
            )

        return AgentResult(
            success=result.returncode == 0,
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            elapsed_seconds=elapsed,
            command=tuple(cmd),
        )
