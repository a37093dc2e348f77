"""Tests for gentrail.lib.dag and task ordering in the cycle runner."""

import logging

import pytest

from gentrail.beads import Task
from gentrail.lib.dag import DependencyDeadlock, dependency_batches
from gentrail.workflow.cycle import order_tasks


def task(id, priority=2, depends_on=()):
    return Task(id=id, title=id, priority=priority, depends_on=tuple(depends_on))


class TestDependencyBatches:
    """Test dependency_batches."""

    def test_independent_items_in_one_batch(self):
        batches = list(dependency_batches([task("a"), task("b")]))
        assert [[t.id for t in b] for b in batches] == [["a", "b"]]

    def test_chain(self):
        items = [task("c", depends_on=["b"]), task("b", depends_on=["a"]), task("a")]
        batches = list(dependency_batches(items))
        assert [[t.id for t in b] for b in batches] == [["a"], ["b"], ["c"]]

    def test_outside_dependencies_count_as_done(self):
        batches = list(dependency_batches([task("a", depends_on=["closed-elsewhere"])]))
        assert [[t.id for t in b] for b in batches] == [["a"]]

    def test_cycle_raises(self):
        items = [task("a", depends_on=["b"]), task("b", depends_on=["a"])]
        with pytest.raises(DependencyDeadlock) as exc:
            list(dependency_batches(items))
        assert exc.value.stuck == ["a", "b"]

    def test_empty(self):
        assert list(dependency_batches([])) == []


class TestOrderTasks:
    """Test order_tasks."""

    def test_dependencies_then_priority(self):
        tasks = [
            task("bd-3", priority=0, depends_on=["bd-2"]),
            task("bd-2", priority=3),
            task("bd-1", priority=1),
        ]
        assert [t.id for t in order_tasks(tasks)] == ["bd-1", "bd-2", "bd-3"]

    def test_priority_then_id(self):
        tasks = [task("bd-9", priority=1), task("bd-2", priority=1), task("bd-1", priority=4)]
        assert [t.id for t in order_tasks(tasks)] == ["bd-2", "bd-9", "bd-1"]

    def test_cycle_dropped_with_warning(self, caplog):
        tasks = [task("ok"), task("x", depends_on=["y"]), task("y", depends_on=["x"])]
        with caplog.at_level(logging.WARNING):
            ordered = order_tasks(tasks)
        assert [t.id for t in ordered] == ["ok"]
        assert "dependency cycle" in caplog.text
