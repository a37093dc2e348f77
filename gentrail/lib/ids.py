"""
Identifier extraction for specification documents.

IDs live in human-written prose (touchpoint descriptions, trace lists), so
everything here is best-effort pattern matching: unexpected text yields no
match, never an exception.

Shapes:
    requirement   prd001-core, prd012-config-loader, req004-auth
    use case      rel01.0-uc001-init
    generation    generation-20260214.0
"""

import re
from pathlib import PureWindowsPath

# Letter prefix is free-form: prd001-core, req012-auth, spec003-api
PRD_ID_PATTERN = r'[a-z]{2,6}\d{3,}(?:-[a-z0-9]+)+'
USE_CASE_ID_PATTERN = r'rel\d+\.\d+-uc\d{3,}(?:-[a-z0-9]+)+'

PRD_ID_RE = re.compile(rf'(?<![\w.-]){PRD_ID_PATTERN}(?![\w])', re.IGNORECASE)
LEADING_PRD_RE = re.compile(rf'^\s*({PRD_ID_PATTERN})\b', re.IGNORECASE)
USE_CASE_ID_RE = re.compile(rf'^{USE_CASE_ID_PATTERN}$', re.IGNORECASE)
PARENTHETICAL_RE = re.compile(r'\(([^()]*)\)')
GENERATION_NAME_RE = re.compile(r'^generation-(\d{8})\.(\d+)$')


def extract_id(path) -> str:
    """Return the file's base name without its last extension.

    Both '/' and '\\' separators are accepted. The result is not validated.

        >>> extract_id("docs/specs/use-cases/rel01.0-uc001-init.yaml")
        'rel01.0-uc001-init'
    """
    name = PureWindowsPath(str(path)).name
    stem, dot, _ext = name.rpartition(".")
    if not dot or not stem:
        return name
    return stem


def extract_prds_from_touchpoints(touchpoints: list[str] | None) -> list[str]:
    """Collect distinct requirement IDs mentioned inside parentheses.

    "T1: Calculator component (prd001-core R1, R2)" -> ["prd001-core"]

    Order of first occurrence is preserved.
    """
    found: list[str] = []
    seen: set[str] = set()
    for line in touchpoints or []:
        if not isinstance(line, str):
            continue
        for group in PARENTHETICAL_RE.findall(line):
            for match in PRD_ID_RE.findall(group):
                if match not in seen:
                    seen.add(match)
                    found.append(match)
    return found


def extract_use_case_ids_from_traces(traces: list[str] | None) -> list[str]:
    """Keep only trace entries shaped like a use-case ID, in input order."""
    result = []
    for entry in traces or []:
        if isinstance(entry, str) and is_use_case_id(entry):
            result.append(entry.strip())
    return result


def is_use_case_id(text: str) -> bool:
    return bool(USE_CASE_ID_RE.match(text.strip()))


def leading_prd_id(text: str) -> str | None:
    """Requirement ID at the start of a trace entry ("prd001-core R4" -> "prd001-core")."""
    match = LEADING_PRD_RE.match(text)
    return match.group(1) if match else None


def is_generation_name(name: str, prefix: str = "generation-") -> bool:
    if not name.startswith(prefix):
        return False
    return bool(GENERATION_NAME_RE.match("generation-" + name[len(prefix):]))


def generation_sort_key(name: str) -> tuple[str, int]:
    """Sort generations by date, then numerically by sequence."""
    date, _, seq = name.rpartition("-")[2].partition(".")
    try:
        return (date, int(seq))
    except ValueError:
        return (date, -1)
