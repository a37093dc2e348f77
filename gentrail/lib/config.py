"""
Configuration loader for gentrail.

Loads the project configuration from a YAML file (default
configuration.yaml, selected with --config/-c) once at startup. Every key is
optional; missing keys fall back to DEFAULTS. Relative paths are resolved
against repo_path, which itself is relative to the configuration file.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from gentrail.lib.errors import ConfigError
from gentrail.lib.validate import validate, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configuration.yaml"

DEFAULTS = {
    "repo_path": ".",
    "main_branch": "main",
    "generation_prefix": "generation-",
    "worktrees_dir": "",  # empty: <repo parent>/<repo name>-worktrees
    "requirements_dir": "docs/specs/product-requirements",
    "use_cases_dir": "docs/specs/use-cases",
    "test_suites_dir": "docs/specs/test-suites",
    "docs_dirs": ["docs"],
    "source_dirs": ["src"],
    "generated_dirs": [],
    "source_extensions": [".py"],
    "cycles": 1,
    "max_tasks_per_cycle": 3,
    "agent_command": "claude --print --dangerously-skip-permissions",
    "agent_timeout": 1800,
    "build_command": "python -m build",
    "lint_command": "ruff check .",
    "install_command": "pip install -e .",
    "clean_paths": ["build", "dist"],
    "beads_dir": ".beads",
    "cobbler_dir": ".cobbler",
    "credentials_file": ".secrets/claude-credentials.json",
}


@dataclass(frozen=True)
class Config:
    """Project configuration. Constructed once and passed to the Orchestrator."""
    repo_path: Path
    main_branch: str = DEFAULTS["main_branch"]
    generation_prefix: str = DEFAULTS["generation_prefix"]
    worktrees_dir: str = DEFAULTS["worktrees_dir"]
    requirements_dir: str = DEFAULTS["requirements_dir"]
    use_cases_dir: str = DEFAULTS["use_cases_dir"]
    test_suites_dir: str = DEFAULTS["test_suites_dir"]
    docs_dirs: tuple[str, ...] = tuple(DEFAULTS["docs_dirs"])
    source_dirs: tuple[str, ...] = tuple(DEFAULTS["source_dirs"])
    generated_dirs: tuple[str, ...] = ()
    source_extensions: tuple[str, ...] = tuple(DEFAULTS["source_extensions"])
    cycles: int = DEFAULTS["cycles"]
    max_tasks_per_cycle: int = DEFAULTS["max_tasks_per_cycle"]
    agent_command: str = DEFAULTS["agent_command"]
    agent_timeout: int = DEFAULTS["agent_timeout"]
    build_command: str = DEFAULTS["build_command"]
    lint_command: str = DEFAULTS["lint_command"]
    install_command: str = DEFAULTS["install_command"]
    clean_paths: tuple[str, ...] = tuple(DEFAULTS["clean_paths"])
    beads_dir: str = DEFAULTS["beads_dir"]
    cobbler_dir: str = DEFAULTS["cobbler_dir"]
    credentials_file: str = DEFAULTS["credentials_file"]
    source_file: Path | None = field(default=None, compare=False)

    @property
    def worktrees_path(self) -> Path:
        if self.worktrees_dir:
            return self.resolve(self.worktrees_dir)
        return self.repo_path.parent / f"{self.repo_path.name}-worktrees"

    @property
    def cobbler_path(self) -> Path:
        return self.resolve(self.cobbler_dir)

    @property
    def generation_pattern(self) -> str:
        """Glob matching generation branch names (for `git branch --list`)."""
        return f"{self.generation_prefix}*"

    def resolve(self, relative: str, root: Path | None = None) -> Path:
        """Resolve a configured path against root (default: repo_path)."""
        path = Path(relative).expanduser()
        if path.is_absolute():
            return path
        return (root or self.repo_path) / path


_TUPLE_KEYS = ("docs_dirs", "source_dirs", "generated_dirs", "source_extensions", "clean_paths")


def load_config(config_file: str | Path = DEFAULT_CONFIG_FILE) -> Config:
    """Load configuration from a YAML file.

    A missing file yields the defaults rooted at the current directory.

    Raises:
        ConfigError: If the file is not valid YAML or fails schema validation
    """
    path = Path(config_file)
    if not path.exists():
        logger.debug(f"Config file {path} not found, using defaults")
        return Config(repo_path=Path.cwd().resolve())

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level, got {type(data).__name__}")

    try:
        validate(data, "config")
    except ValidationError as e:
        raise ConfigError(f"{path}: {e}") from None

    base = path.resolve().parent
    values = {k: v for k, v in data.items() if k != "repo_path"}
    for key in _TUPLE_KEYS:
        if key in values:
            values[key] = tuple(values[key])

    repo_path = (base / Path(data.get("repo_path", DEFAULTS["repo_path"])).expanduser()).resolve()
    return Config(repo_path=repo_path, source_file=path.resolve(), **values)
