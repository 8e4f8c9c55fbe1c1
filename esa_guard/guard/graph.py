"""Task dependency graph construction and analysis."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ErrorKind, ValidationError
from ..models import Task


@dataclass
class TaskGraph:
    """Graph of task dependencies (edge: task -> prerequisite)."""

    nodes: dict[str, Task] = field(default_factory=dict)  # id -> Task, input order
    edges: dict[str, list[str]] = field(default_factory=dict)  # task -> prerequisites, given order
    reverse_edges: dict[str, set[str]] = field(default_factory=dict)  # prerequisite -> dependents

    @classmethod
    def from_tasks(cls, tasks: list[Task]) -> "TaskGraph":
        """Build graph from a task list.

        References to unknown ids are kept as edges but never become nodes.
        """
        graph = cls()

        for task in tasks:
            graph.nodes.setdefault(task.id, task)

        for task in tasks:
            deps = graph.edges.setdefault(task.id, [])
            for dep in task.depends_on:
                if dep in deps:
                    continue
                deps.append(dep)
                graph.reverse_edges.setdefault(dep, set()).add(task.id)

        return graph

    def get_dependencies(self, task_id: str) -> list[str]:
        """Get direct prerequisites of a task."""
        return self.edges.get(task_id, [])

    def get_dependents(self, task_id: str) -> set[str]:
        """Get tasks that depend on this one."""
        return self.reverse_edges.get(task_id, set())

    def is_reachable(self, start: str, target: str) -> bool:
        """Depth-first reachability from `start` to `target` over prerequisite edges.

        Uses a fresh visited set per call.
        """
        visited: set[str] = set()
        stack = [start]

        while stack:
            current = stack.pop()
            if current == target:
                return True
            if current in visited:
                continue
            visited.add(current)

            for dep in self.edges.get(current, []):
                if dep not in visited:
                    stack.append(dep)

        return False

    def transitive_reduction(self) -> dict[str, list[str]]:
        """Direct prerequisites with edges implied by longer paths removed.

        An edge A -> B is dropped when B is reachable from another direct
        prerequisite of A. Display only; correctness checks use `edges`.
        """
        reduced: dict[str, list[str]] = {}

        for task_id in self.nodes:
            deps = self.edges.get(task_id, [])
            kept = []
            for dep in deps:
                implied = any(other != dep and self.is_reachable(other, dep) for other in deps)
                if not implied:
                    kept.append(dep)
            reduced[task_id] = kept

        return reduced

    def leaf_nodes(self) -> list[str]:
        """Tasks no other task names as a prerequisite, in input order."""
        return [task_id for task_id in self.nodes if not self.reverse_edges.get(task_id)]

    def find_cycles(self) -> list[list[str]]:
        """Find cycles using Tarjan's strongly connected components.

        Returns SCCs with more than one node plus single-node self-loops.
        Iterative, so long dependency chains do not hit the recursion limit.
        """
        counter = 0
        stack: list[str] = []
        lowlinks: dict[str, int] = {}
        index: dict[str, int] = {}
        on_stack: set[str] = set()
        sccs: list[list[str]] = []

        for root in self.nodes:
            if root in index:
                continue

            index[root] = lowlinks[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            work = [(root, iter(self.edges.get(root, [])))]

            while work:
                node, deps = work[-1]
                descended = False
                for dep in deps:
                    if dep not in self.nodes:
                        continue  # dangling reference
                    if dep not in index:
                        index[dep] = lowlinks[dep] = counter
                        counter += 1
                        stack.append(dep)
                        on_stack.add(dep)
                        work.append((dep, iter(self.edges.get(dep, []))))
                        descended = True
                        break
                    if dep in on_stack:
                        lowlinks[node] = min(lowlinks[node], index[dep])
                if descended:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlinks[parent] = min(lowlinks[parent], lowlinks[node])

                if lowlinks[node] == index[node]:
                    scc = []
                    while True:
                        w = stack.pop()
                        on_stack.discard(w)
                        scc.append(w)
                        if w == node:
                            break
                    if len(scc) > 1 or node in self.edges.get(node, []):
                        sccs.append(scc)

        return sccs

    def has_cycle(self) -> bool:
        return bool(self.find_cycles())


def validate_dependencies(tasks: list[Task]) -> None:
    """Check every depends_on edge, then the whole graph for cycles.

    Raises:
        ValidationError: FIELD_INVALID_FORMAT for an empty id, SELF_REFERENCE,
            NON_EXISTENT_REF, or CIRCULAR_DEPENDENCY.
    """
    task_ids = {task.id for task in tasks}

    for i, task in enumerate(tasks):
        for j, dep_id in enumerate(task.depends_on):
            if dep_id == "":
                raise ValidationError(
                    ErrorKind.FIELD_INVALID_FORMAT,
                    f"task[{i}].depends_on[{j}]: empty task ID",
                    field="task.depends_on",
                    index=i,
                )
            if dep_id == task.id:
                raise ValidationError(
                    ErrorKind.SELF_REFERENCE,
                    f"task[{i}].depends_on: self-reference is not allowed",
                    field="task.depends_on",
                    index=i,
                )
            if dep_id not in task_ids:
                raise ValidationError(
                    ErrorKind.NON_EXISTENT_REF,
                    f"task[{i}].depends_on references non-existent task ID: {dep_id}",
                    field="task.depends_on",
                    index=i,
                )

    if TaskGraph.from_tasks(tasks).has_cycle():
        raise ValidationError(ErrorKind.CIRCULAR_DEPENDENCY, "circular dependency detected", field="task.depends_on")


def transitive_reduction(tasks: list[Task]) -> dict[str, list[str]]:
    return TaskGraph.from_tasks(tasks).transitive_reduction()


def leaf_nodes(tasks: list[Task]) -> list[str]:
    return TaskGraph.from_tasks(tasks).leaf_nodes()
