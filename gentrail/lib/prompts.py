"""
Prompt templates for the agent.

Templates live in gentrail/prompts/<name>.md and use str.format() fields
({variable}; {{ and }} for literal braces). A leading HTML comment documents
the template and declares its inputs on a "Variables:" line; the comment is
never sent to the agent, but rendering checks the declared inputs against
what the caller supplies.
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from gentrail.lib.errors import GentrailError

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

_COMMENT_RE = re.compile(r"<!--(.*?)-->\s*", re.DOTALL)
_VARIABLES_RE = re.compile(r"^\s*Variables:\s*(.+)$", re.MULTILINE)


class PromptError(GentrailError):
    """A template is missing or was rendered with the wrong inputs."""
    pass


@dataclass(frozen=True)
class Prompt:
    name: str
    text: str
    variables: tuple[str, ...] = ()


@lru_cache(maxsize=32)
def load_prompt(name: str) -> Prompt:
    """Load a template by name (cached), comments stripped.

    Raises:
        PromptError: If the template file does not exist
    """
    path = PROMPTS_DIR / f"{name}.md"
    if not path.exists():
        raise PromptError(f"Prompt template '{name}' not found. Expected file: {path}")

    raw = path.read_text()
    declared: list[str] = []
    for comment in _COMMENT_RE.findall(raw):
        for line in _VARIABLES_RE.findall(comment):
            declared.extend(v.strip() for v in line.split(",") if v.strip())

    logger.debug(f"Loaded prompt template {name} ({len(declared)} variables)")
    return Prompt(name=name, text=_COMMENT_RE.sub("", raw).lstrip(), variables=tuple(declared))


def render_prompt(name: str, **values) -> str:
    """Render a template with values for every declared variable.

    Raises:
        PromptError: If the template is missing or a variable has no value
    """
    prompt = load_prompt(name)
    missing = [v for v in prompt.variables if v not in values]
    if missing:
        raise PromptError(f"Missing required variable(s) {', '.join(missing)} in prompt '{name}'")

    try:
        return prompt.text.format(**values)
    except KeyError as e:
        # Field used in the body but not declared in the header
        raise PromptError(f"Missing required variable(s) {e.args[0]} in prompt '{name}'") from e


def build_section(content: str | None, header: str, empty_msg: str | None = None) -> str:
    """Markdown section with header, or "" when there is nothing to say."""
    if content:
        return f"{header}\n\n{content}\n"
    if empty_msg is not None:
        return f"{header}\n\n{empty_msg}\n"
    return ""
