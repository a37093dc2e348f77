"""
JSON Schema checks for configuration and specification documents.

Schemas live in gentrail/schemas/<name>.schema.json. Every violation in a
document is reported at once, ordered by location, so a hand-edited YAML file
can be fixed in one pass.
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"


@dataclass(frozen=True)
class Problem:
    path: str  # dotted location, "(root)" for the document itself
    message: str

    def __str__(self) -> str:
        return f"{self.message} at {self.path}"


class ValidationError(Exception):
    """A document does not match its schema."""

    def __init__(self, schema_name: str, problems: list[Problem]):
        self.schema_name = schema_name
        self.problems = problems
        super().__init__(f"[{schema_name}] " + "; ".join(str(p) for p in problems))

    @property
    def path(self) -> str:
        """Location of the first problem."""
        return self.problems[0].path if self.problems else "(root)"


@lru_cache(maxsize=None)
def _validator(schema_name: str):
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise ValidationError(schema_name, [Problem("(root)", f"Schema file not found: {schema_path}")])
    schema = json.loads(schema_path.read_text())
    cls = jsonschema.validators.validator_for(schema)
    cls.check_schema(schema)
    return cls(schema)


def _location(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: Any, schema_name: str) -> None:
    """
    Validate data against a named schema ("config", "use_case", "test_suite").

    Raises:
        ValidationError: With every violation found
    """
    errors = _validator(schema_name).iter_errors(data)
    problems = sorted(
        (Problem(_location(e), e.message) for e in errors),
        key=lambda p: (p.path != "(root)", p.path),
    )
    if problems:
        raise ValidationError(schema_name, problems)
