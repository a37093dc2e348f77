"""
Error taxonomy for gentrail.

Loaders raise NotFoundError / ParseError, the generation layer raises
ExternalCommandError when git, the agent, or a build tool fails, and
NoRecoverableStateError when resume/switch has nothing to act on.
Text parsers never raise.
"""


class GentrailError(Exception):
    """Base class for all gentrail errors."""
    pass


class NotFoundError(GentrailError):
    """A document or path does not exist."""

    def __init__(self, path, what: str = "file"):
        self.path = path
        super().__init__(f"{what} not found: {path}")


class ParseError(GentrailError):
    """A document exists but its structure is malformed."""

    def __init__(self, path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class ConfigError(GentrailError):
    """Configuration file is invalid."""
    pass


class ExternalCommandError(GentrailError):
    """An external command exited non-zero, timed out, or could not be run."""

    def __init__(self, command: list[str], returncode: int, stderr: str = "", action: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.action = action
        what = f"{action}: " if action else ""
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        super().__init__(
            f"{what}'{' '.join(command[:3])}' failed (exit {returncode}): {detail}"
        )


class NoRecoverableStateError(GentrailError):
    """resume/switch found no generation to act on."""
    pass


class GenerationExistsError(GentrailError):
    """A generation with the requested name already exists."""
    pass
