"""
Build tool wrappers: build, lint, install, clean and credentials.

Commands come from the configuration and are split with shlex; none of them
goes through a shell. A non-zero exit raises ExternalCommandError.
"""

import logging
import os
import shlex
import shutil
import subprocess
import sys
from pathlib import Path

from gentrail.lib.config import Config
from gentrail.lib.errors import ExternalCommandError

logger = logging.getLogger(__name__)

TOOL_TIMEOUT = 1800
KEYCHAIN_SERVICE = "Claude Code-credentials"


def run_tool(command: str | list[str], cwd: Path, action: str, timeout: int = TOOL_TIMEOUT) -> str:
    """Run a command and return its stdout.

    Raises:
        ExternalCommandError: On non-zero exit, timeout, or missing executable
    """
    cmd = shlex.split(command) if isinstance(command, str) else list(command)
    if not cmd:
        raise ExternalCommandError(["<empty>"], 2, "no command configured", action)

    logger.info(f"[TOOL] {action}: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ExternalCommandError(cmd, 127, f"'{cmd[0]}' is not installed", action) from None
    except subprocess.TimeoutExpired:
        raise ExternalCommandError(cmd, -1, f"timed out after {timeout}s", action) from None

    if result.returncode != 0:
        # Linters report findings on stdout
        raise ExternalCommandError(cmd, result.returncode, result.stderr or result.stdout, action)
    return result.stdout


def build(config: Config) -> str:
    return run_tool(config.build_command, config.repo_path, "build")


def lint(config: Config) -> str:
    return run_tool(config.lint_command, config.repo_path, "lint")


def install(config: Config) -> str:
    return run_tool(config.install_command, config.repo_path, "install")


def clean(config: Config) -> list[Path]:
    """Remove configured build artifacts. Returns the paths removed."""
    removed = []
    for rel in config.clean_paths:
        path = config.resolve(rel)
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            continue
        logger.info(f"[TOOL] Removed {path}")
        removed.append(path)
    return removed


def extract_credentials(config: Config) -> Path:
    """Copy the agent's OAuth credentials from the macOS Keychain to credentials_file.

    Raises:
        ExternalCommandError: If not on macOS or the Keychain lookup fails
    """
    if sys.platform != "darwin":
        raise ExternalCommandError(
            ["security"], 127, "the macOS Keychain is only available on macOS", "extracting credentials"
        )

    secret = run_tool(
        ["security", "find-generic-password", "-s", KEYCHAIN_SERVICE, "-w"],
        config.repo_path,
        "extracting credentials",
        timeout=30,
    ).strip()
    if not secret:
        raise ExternalCommandError(
            ["security", "find-generic-password"], 0, "empty credentials", "extracting credentials"
        )

    target = config.resolve(config.credentials_file)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(secret + "\n")
    os.chmod(target, 0o600)
    logger.info(f"[TOOL] Wrote credentials to {target}")
    return target
