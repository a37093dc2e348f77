"""
Project size statistics for the `stats` command.

Counts non-blank source lines (split into production and test code) under
the configured source directories, and words in documentation files under
the configured docs directories.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from gentrail.lib.config import Config

logger = logging.getLogger(__name__)

DOC_SUFFIXES = (".md", ".yaml", ".yml", ".txt", ".rst")


@dataclass
class ProjectStats:
    source_lines: int = 0
    test_lines: int = 0
    source_files: int = 0
    doc_words: dict[str, int] = field(default_factory=dict)

    @property
    def total_doc_words(self) -> int:
        return sum(self.doc_words.values())


def is_test_file(path: Path) -> bool:
    stem = path.stem
    return stem.startswith("test_") or stem.endswith("_test") or "tests" in path.parts


def count_lines(path: Path) -> int:
    """Non-blank lines in a text file; unreadable files count as 0."""
    try:
        text = path.read_text(errors="replace")
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        return 0
    return sum(1 for line in text.splitlines() if line.strip())


def count_words(path: Path) -> int:
    try:
        return len(path.read_text(errors="replace").split())
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        return 0


def _walk(root: Path, suffixes: tuple[str, ...]) -> list[Path]:
    if not root.is_dir():
        return []
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and p.suffix in suffixes and not any(part.startswith(".") for part in p.relative_to(root).parts)
    )


def collect_stats(config: Config, root: Path | None = None) -> ProjectStats:
    stats = ProjectStats()
    base = root or config.repo_path
    extensions = tuple(config.source_extensions)

    for rel in config.source_dirs:
        for path in _walk(config.resolve(rel, root), extensions):
            lines = count_lines(path)
            stats.source_files += 1
            if is_test_file(path.relative_to(base) if path.is_relative_to(base) else path):
                stats.test_lines += lines
            else:
                stats.source_lines += lines

    for rel in config.docs_dirs:
        for path in _walk(config.resolve(rel, root), DOC_SUFFIXES):
            key = str(path.relative_to(base)) if path.is_relative_to(base) else str(path)
            stats.doc_words[key] = count_words(path)

    return stats


def format_stats(stats: ProjectStats) -> str:
    lines = [
        f"Source files: {stats.source_files}",
        f"Lines of code: {stats.source_lines} production, {stats.test_lines} test",
        f"Documentation: {stats.total_doc_words} words in {len(stats.doc_words)} files",
    ]
    width = max((len(name) for name in stats.doc_words), default=0)
    for name, words in sorted(stats.doc_words.items()):
        lines.append(f"  {name:<{width}}  {words:>7}")
    return "\n".join(lines)
