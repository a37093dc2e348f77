"""
Cobbler scratch directory.

Holds per-run artifacts (prompts sent, agent output) that are useful for
debugging but never committed.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class Cobbler:
    def __init__(self, path: Path):
        self.path = path

    def ensure(self) -> Path:
        self.path.mkdir(parents=True, exist_ok=True)
        return self.path

    def artifact_path(self, name: str) -> Path:
        """Timestamped path for a new artifact (directory created)."""
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        return self.ensure() / f"{stamp}-{name}"

    def reset(self) -> bool:
        """Remove the scratch directory. Returns True if something was removed."""
        if not self.path.exists():
            logger.info(f"[COBBLER] Nothing to remove at {self.path}")
            return False
        shutil.rmtree(self.path)
        logger.info(f"[COBBLER] Removed {self.path}")
        return True
