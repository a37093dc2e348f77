"""
Specification document loader.

Parses use-case and test-suite YAML documents into frozen records. The
declared `id` is taken as-is; it is not cross-checked against the filename.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gentrail.lib.errors import NotFoundError, ParseError
from gentrail.lib.ids import extract_id
from gentrail.lib.validate import validate, ValidationError

logger = logging.getLogger(__name__)

SPEC_SUFFIXES = (".yaml", ".yml")


@dataclass(frozen=True)
class UseCase:
    id: str
    title: str
    touchpoints: tuple[str, ...] = ()
    path: Path | None = field(default=None, compare=False)


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest class

    name: str
    inputs: Any = None
    expected: Any = None


@dataclass(frozen=True)
class TestSuite:
    __test__ = False

    id: str
    title: str
    release: str = ""
    traces: tuple[str, ...] = ()
    test_cases: tuple[TestCase, ...] = ()
    path: Path | None = field(default=None, compare=False)


def _read_document(path: Path, schema_name: str) -> dict:
    """Read and validate one YAML document."""
    if not path.is_file():
        raise NotFoundError(path, "specification document")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ParseError(path, f"invalid YAML: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(path, f"unreadable: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(path, "expected a mapping at top level")

    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ParseError(path, "; ".join(str(p) for p in e.problems)) from None
    return data


def _touchpoint_text(item: Any) -> str:
    """"T1: text" for both the quoted form and the {T1: text} mapping YAML makes of the unquoted one."""
    if isinstance(item, dict):
        ((key, value),) = item.items()
        return str(key) if value is None else f"{key}: {value}"
    return str(item)


def load_use_case(path: str | Path) -> UseCase:
    """Load a use-case document.

    Raises:
        NotFoundError: If path does not exist
        ParseError: If the document is malformed
    """
    path = Path(path)
    data = _read_document(path, "use_case")
    return UseCase(
        id=data["id"],
        title=data.get("title") or "",
        touchpoints=tuple(_touchpoint_text(tp) for tp in data.get("touchpoints") or ()),
        path=path,
    )


def load_test_suite(path: str | Path) -> TestSuite:
    """Load a test-suite document.

    Traces keep document order so gap reports are reproducible.

    Raises:
        NotFoundError: If path does not exist
        ParseError: If the document is malformed
    """
    path = Path(path)
    data = _read_document(path, "test_suite")
    cases = tuple(
        TestCase(name=c["name"], inputs=c.get("inputs"), expected=c.get("expected"))
        for c in data.get("test_cases") or ()
    )
    release = data.get("release")
    return TestSuite(
        id=data["id"],
        title=data.get("title") or "",
        release="" if release is None else str(release),
        traces=tuple(data.get("traces") or ()),
        test_cases=cases,
        path=path,
    )


def _spec_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        logger.debug(f"Spec directory {directory} does not exist, treating as empty")
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix in SPEC_SUFFIXES)


def load_use_cases(directory: str | Path) -> list[UseCase]:
    """Load every use case in a directory, in filename order. Missing directory -> []."""
    return [load_use_case(p) for p in _spec_files(Path(directory))]


def load_test_suites(directory: str | Path) -> list[TestSuite]:
    """Load every test suite in a directory, in filename order. Missing directory -> []."""
    return [load_test_suite(p) for p in _spec_files(Path(directory))]


def list_requirement_ids(directory: str | Path) -> list[str]:
    """IDs of requirement documents, derived from filenames only."""
    return [extract_id(p) for p in _spec_files(Path(directory))]
