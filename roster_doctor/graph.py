"""
Cycle detection over id-to-id reference graphs.

Used for task dependency cycles and for co-run groups that loop through each
other. The search keeps its own work stack so very long dependency chains
cannot hit the interpreter recursion limit.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from roster_doctor.models import Task

WHITE = 0
GRAY = 1
BLACK = 2

EdgeLookup = Callable[[str], Iterable[str]]


def find_cycle(start: str, edges_of: EdgeLookup) -> tuple[str, ...] | None:
    """
    Return the first cycle reachable from ``start`` as a closed path.

    Three-color DFS: a node is WHITE until entered, GRAY while it is on the
    current path and BLACK once every edge out of it has been explored. An
    edge into a GRAY node closes a cycle, e.g. ``("A", "B", "C", "A")``.
    Nodes that ``edges_of`` knows nothing about are dead ends.
    """
    color: dict[str, int] = {start: GRAY}
    path: list[str] = [start]
    position: dict[str, int] = {start: 0}
    frames: list[tuple[str, Iterator[str]]] = [(start, iter(list(edges_of(start))))]

    while frames:
        node, children = frames[-1]
        try:
            child = next(children)
        except StopIteration:
            frames.pop()
            color[node] = BLACK
            path.pop()
            del position[node]
            continue

        state = color.get(child, WHITE)
        if state == GRAY:
            return tuple(path[position[child]:] + [child])
        if state == WHITE:
            color[child] = GRAY
            position[child] = len(path)
            path.append(child)
            frames.append((child, iter(list(edges_of(child)))))

    return None


def has_cycle(start: str, edges_of: EdgeLookup) -> bool:
    return find_cycle(start, edges_of) is not None


def lookup_edges(adjacency: dict[str, Sequence[str]]) -> EdgeLookup:
    def edges_of(node: str) -> Iterable[str]:
        return adjacency.get(node, ())

    return edges_of


def dependency_edges(tasks: Sequence["Task"]) -> EdgeLookup:
    """Edges from each task id to its dependencies; the first task with an id wins."""
    adjacency: dict[str, Sequence[str]] = {}
    for task in tasks:
        if task.id and task.id not in adjacency:
            adjacency[task.id] = list(task.dependencies or [])
    return lookup_edges(adjacency)


def ordered_group_edges(groups: Iterable[Sequence[str]]) -> EdgeLookup:
    """
    Connect the members of each group pairwise, following listed order.

    Every member points at each member listed after it, so one group on its
    own never loops; a cycle needs overlapping groups that disagree on order.
    """
    adjacency: dict[str, list[str]] = {}
    for group in groups:
        members = list(dict.fromkeys(member for member in group if member))
        for index, member in enumerate(members):
            targets = adjacency.setdefault(member, [])
            for other in members[index + 1:]:
                if other not in targets:
                    targets.append(other)
    return lookup_edges(adjacency)


def format_cycle(cycle: Sequence[str]) -> str:
    return " -> ".join(cycle)
