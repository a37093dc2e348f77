"""
Run lock for generations.

Uses flock on <git-common-dir>/gentrail/locks/<generation>.lock so `list` and
`resume` can tell a live run from a dead one. The lock file doubles as a run
marker:

    empty                 idle (last run finished cleanly)
    "running pid=N"       held -> running; not held -> process died mid-run
    "suspended pid=N ..." run halted on an error or signal
"""

import fcntl
import logging
import os
import signal
import sys
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from gentrail.lib.errors import GentrailError

logger = logging.getLogger(__name__)


class LockHeld(GentrailError):
    """Another process is running this generation."""
    pass


class LockStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    INTERRUPTED = "interrupted"


def lock_path(lock_dir: Path, name: str) -> Path:
    return lock_dir / f"{name}.lock"


def _is_held(path: Path) -> bool:
    try:
        fd = open(path, "r")
    except OSError:
        return False
    try:
        # Try non-blocking exclusive lock
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(fd, fcntl.LOCK_UN)
        return False
    except BlockingIOError:
        return True
    finally:
        fd.close()


def lock_status(lock_dir: Path, name: str) -> LockStatus:
    """Classify the run marker of a generation."""
    path = lock_path(lock_dir, name)
    if not path.exists():
        return LockStatus.IDLE
    if _is_held(path):
        return LockStatus.RUNNING
    try:
        content = path.read_text().strip()
    except OSError as e:
        logger.warning(f"[LOCK] Cannot read {path}: {e}")
        return LockStatus.IDLE
    return LockStatus.INTERRUPTED if content else LockStatus.IDLE


def clear_marker(lock_dir: Path, name: str) -> None:
    """Mark a generation idle. Lock files are truncated, never deleted."""
    path = lock_path(lock_dir, name)
    if path.exists() and not _is_held(path):
        path.write_text("")


@contextmanager
def generation_lock(lock_dir: Path, name: str):
    """
    Hold the run lock for a generation for the duration of the block.

    A clean exit clears the marker. An exception, SIGINT or SIGTERM leaves a
    "suspended" marker so the generation is reported as interrupted.

    Raises:
        LockHeld: If another process holds the lock
    """
    path = lock_path(lock_dir, name)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Open without truncating so a held lock's marker survives a failed attempt
    fd = open(path, "a+")
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        fd.close()
        raise LockHeld(f"Generation {name} is being run by another process") from None

    def write(text: str) -> None:
        fd.seek(0)
        fd.truncate()
        fd.write(text)
        fd.flush()

    original_sigterm = signal.signal(signal.SIGTERM, lambda *_: sys.exit(1))
    original_sigint = signal.signal(signal.SIGINT, lambda *_: sys.exit(130))

    write(f"running pid={os.getpid()}\n")
    try:
        yield
    except BaseException as e:
        write(f"suspended pid={os.getpid()}\n{type(e).__name__}: {e}\n")
        raise
    else:
        write("")
    finally:
        signal.signal(signal.SIGTERM, original_sigterm)
        signal.signal(signal.SIGINT, original_sigint)
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()
