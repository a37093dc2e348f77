"""
Requirement traceability graph.

Links requirements (PRDs) to use cases through touchpoint references, and use
cases to test suites through trace lists:

    prd001-core  <--touchpoints--  rel01.0-uc001-init  <--traces--  test-rel01.0

Links are derived on every build, never stored. All query results are sorted
so measurement reports are reproducible.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from gentrail.lib.config import Config
from gentrail.lib.ids import (
    extract_prds_from_touchpoints,
    extract_use_case_ids_from_traces,
    is_use_case_id,
    leading_prd_id,
)
from gentrail.lib.specs import (
    TestSuite,
    UseCase,
    list_requirement_ids,
    load_test_suites,
    load_use_cases,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverageReport:
    """Gaps found in one graph build."""
    uncovered_requirements: list[str] = field(default_factory=list)
    untested_use_cases: list[str] = field(default_factory=list)
    untested_requirements: list[str] = field(default_factory=list)
    dangling_references: list[tuple[str, str]] = field(default_factory=list)

    @property
    def gap_count(self) -> int:
        return (
            len(self.uncovered_requirements)
            + len(self.untested_use_cases)
            + len(self.untested_requirements)
            + len(self.dangling_references)
        )

    def is_complete(self) -> bool:
        return self.gap_count == 0


class TraceabilityGraph:
    """Bipartite coverage graph: requirement <-> use case <-> test suite."""

    def __init__(self):
        self.use_cases: dict[str, UseCase] = {}
        self.test_suites: dict[str, TestSuite] = {}
        self.requirements: set[str] = set()
        # requirement -> use cases referencing it
        self._prd_to_ucs: dict[str, set[str]] = {}
        # use case -> test suites tracing it
        self._uc_to_suites: dict[str, set[str]] = {}
        # requirement -> test suites tracing it directly
        self._prd_to_suites: dict[str, set[str]] = {}
        self._dangling: set[tuple[str, str]] = set()

    @classmethod
    def build(
        cls,
        use_cases: list[UseCase],
        test_suites: list[TestSuite],
        requirement_ids: list[str] | tuple[str, ...] = (),
    ) -> "TraceabilityGraph":
        graph = cls()
        graph.requirements.update(requirement_ids)

        for uc in use_cases:
            if uc.id in graph.use_cases:
                logger.warning(f"[TRACE] Duplicate use case id {uc.id} ({uc.path}), keeping first")
                continue
            graph.use_cases[uc.id] = uc
            for prd in extract_prds_from_touchpoints(list(uc.touchpoints)):
                graph.requirements.add(prd)
                graph._prd_to_ucs.setdefault(prd, set()).add(uc.id)

        for suite in test_suites:
            if suite.id in graph.test_suites:
                logger.warning(f"[TRACE] Duplicate test suite id {suite.id} ({suite.path}), keeping first")
                continue
            graph.test_suites[suite.id] = suite

        # Resolve traces only after every use case and requirement is known
        for suite in graph.test_suites.values():
            for uc_id in extract_use_case_ids_from_traces(list(suite.traces)):
                graph._link_use_case(suite.id, uc_id)
            for trace in suite.traces:
                if not is_use_case_id(trace):
                    graph._link_requirement(suite.id, trace)

        logger.debug(
            f"[TRACE] Built graph: {len(graph.requirements)} requirements, "
            f"{len(graph.use_cases)} use cases, {len(graph.test_suites)} test suites"
        )
        return graph

    def _link_use_case(self, suite_id: str, uc_id: str) -> None:
        if uc_id in self.use_cases:
            self._uc_to_suites.setdefault(uc_id, set()).add(suite_id)
        else:
            self._dangling.add((suite_id, uc_id))

    def _link_requirement(self, suite_id: str, trace: str) -> None:
        prd = leading_prd_id(trace)
        if prd and prd in self.requirements:
            self._prd_to_suites.setdefault(prd, set()).add(suite_id)
        else:
            self._dangling.add((suite_id, trace.strip()))

    # --- queries ---

    def requirement_links(self) -> list[tuple[str, str]]:
        """(requirement_id, use_case_id) pairs."""
        return sorted((prd, uc) for prd, ucs in self._prd_to_ucs.items() for uc in ucs)

    def use_case_links(self) -> list[tuple[str, str]]:
        """(use_case_id, test_suite_id) pairs."""
        return sorted((uc, ts) for uc, suites in self._uc_to_suites.items() for ts in suites)

    def is_covered(self, requirement_id: str) -> bool:
        """True if at least one loaded use case references the requirement."""
        return bool(self._prd_to_ucs.get(requirement_id))

    def is_tested(self, use_case_id: str) -> bool:
        """True if at least one loaded test suite traces the use case."""
        return bool(self._uc_to_suites.get(use_case_id))

    def uncovered_requirements(self) -> list[str]:
        """Known requirements that no use case references."""
        return sorted(prd for prd in self.requirements if not self.is_covered(prd))

    def untested_use_cases(self) -> list[str]:
        """Loaded use cases that no test suite traces."""
        return sorted(uc for uc in self.use_cases if not self.is_tested(uc))

    def untested_requirements(self) -> list[str]:
        """Requirements referenced by use cases but reached by no test suite.

        A requirement counts as tested if a suite traces it directly, or traces
        any use case that references it.
        """
        result = []
        for prd, ucs in self._prd_to_ucs.items():
            if self._prd_to_suites.get(prd):
                continue
            if any(self.is_tested(uc) for uc in ucs):
                continue
            result.append(prd)
        return sorted(result)

    def dangling_references(self) -> list[tuple[str, str]]:
        """(test_suite_id, trace) pairs resolving to no known use case or requirement."""
        return sorted(self._dangling)

    def report(self) -> CoverageReport:
        return CoverageReport(
            uncovered_requirements=self.uncovered_requirements(),
            untested_use_cases=self.untested_use_cases(),
            untested_requirements=self.untested_requirements(),
            dangling_references=self.dangling_references(),
        )


def build_graph(config: Config, root: Path | None = None) -> TraceabilityGraph:
    """Load all spec documents under root (default: repo_path) and build the graph.

    Raises:
        ParseError: If any document is malformed
    """
    use_cases = load_use_cases(config.resolve(config.use_cases_dir, root))
    test_suites = load_test_suites(config.resolve(config.test_suites_dir, root))
    requirement_ids = list_requirement_ids(config.resolve(config.requirements_dir, root))
    return TraceabilityGraph.build(use_cases, test_suites, requirement_ids)


def format_report(graph: TraceabilityGraph, report: CoverageReport | None = None) -> str:
    """Render a coverage report as markdown for prompts and terminal output."""
    report = report or graph.report()
    lines = [
        f"Requirements: {len(graph.requirements)}  "
        f"Use cases: {len(graph.use_cases)}  "
        f"Test suites: {len(graph.test_suites)}",
        "",
    ]

    def section(title: str, items: list[str]) -> None:
        lines.append(f"### {title} ({len(items)})")
        lines.extend(f"- {item}" for item in items)
        if not items:
            lines.append("- none")
        lines.append("")

    section("Requirements without a use case", report.uncovered_requirements)
    section("Use cases without a test suite", report.untested_use_cases)
    section("Requirements without test coverage", report.untested_requirements)
    section(
        "Dangling trace references",
        [f"{suite}: {trace}" for suite, trace in report.dangling_references],
    )
    return "\n".join(lines).rstrip() + "\n"
