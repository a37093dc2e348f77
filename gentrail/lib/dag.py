"""
Dependency batching for ready tasks.

Repeatedly scans the remaining items and yields the batch whose prerequisites
are satisfied. Dependencies on items outside the input count as done: the
tracker only reports tasks whose external blockers are closed.

Within a batch, caller order is kept, so sorting the input (priority, id)
before batching gives a deterministic schedule.
"""

from collections.abc import Iterable, Iterator
from typing import Protocol


class HasDependencies(Protocol):
    id: str
    depends_on: tuple[str, ...]


class DependencyDeadlock(RuntimeError):
    """Remaining items form a cycle."""

    def __init__(self, stuck: list[str]):
        self.stuck = stuck
        super().__init__(f"No runnable items; dependency cycle among: {stuck}")


def dependency_batches(items: Iterable[HasDependencies]) -> Iterator[list[HasDependencies]]:
    """Yield batches of items whose in-set dependencies have been yielded already.

    Raises:
        DependencyDeadlock: If items remain but none is runnable
    """
    ordered = list(items)
    known = {item.id for item in ordered}
    remaining = {item.id for item in ordered}
    emitted: set[str] = set()

    while remaining:
        batch = [
            item for item in ordered
            if item.id in remaining
            and all(dep in emitted or dep not in known for dep in item.depends_on)
        ]
        if not batch:
            raise DependencyDeadlock(sorted(remaining))

        yield batch

        for item in batch:
            emitted.add(item.id)
            remaining.discard(item.id)
