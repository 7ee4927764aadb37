"""Dependency graph checks.

The graph is never loaded as a whole: callers inject ``edges_of(task_id)``,
which returns the ids a task currently depends on (empty when the task is
unknown). Walks are iterative and keep a global visited set, so each node is
expanded at most once even when the stored graph is already cyclic.
"""

from typing import Callable, Hashable, Iterable, Optional

from synaptik.utils.errors import CyclicDependency, SelfDependency
from synaptik.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)

EdgeLookup = Callable[[Hashable], Optional[Iterable[Hashable]]]

_EXHAUSTED = object()


def _edges(edges_of: EdgeLookup, node: Hashable) -> list:
    return list(dict.fromkeys(edges_of(node) or ()))


@timed("check_dependencies", logger=logger)
def check_dependencies(
    task_id: Hashable,
    candidates: Iterable[Hashable],
    edges_of: EdgeLookup,
) -> frozenset:
    """
    Validate a candidate dependency set for ``task_id``.

    Returns the de-duplicated candidate set. Raises SelfDependency if the task
    lists itself, CyclicDependency if following the candidates leads back to
    the task (or loops on the current path).
    """
    normalized = list(dict.fromkeys(candidates or ()))
    if task_id in normalized:
        logger.warning("Rejected self dependency", task_id=str(task_id))
        raise SelfDependency(task_id)

    visited: set = set()
    lookups = 0
    for root in normalized:
        cycle, expanded = _walk_from(task_id, root, edges_of, visited)
        lookups += expanded
        if cycle is not None:
            logger.warning(
                "Rejected cyclic dependency",
                task_id=str(task_id),
                cycle=[str(node) for node in cycle],
            )
            raise CyclicDependency(task_id, cycle)

    logger.debug(
        "Dependencies accepted",
        task_id=str(task_id),
        dependency_count=len(normalized),
        nodes_expanded=lookups,
    )
    return frozenset(normalized)


def _walk_from(task_id, root, edges_of: EdgeLookup, visited: set):
    """Depth-first walk from ``root``; returns (cycle path or None, nodes expanded)."""
    if root in visited:
        return None, 0

    path = [task_id, root]
    on_path = {task_id, root}
    visited.add(root)
    stack = [iter(_edges(edges_of, root))]
    expanded = 1

    while stack:
        nxt = next(stack[-1], _EXHAUSTED)
        if nxt is _EXHAUSTED:
            stack.pop()
            on_path.discard(path.pop())
            continue
        if nxt in on_path:
            return path + [nxt], expanded
        if nxt in visited:
            continue
        visited.add(nxt)
        path.append(nxt)
        on_path.add(nxt)
        stack.append(iter(_edges(edges_of, nxt)))
        expanded += 1

    return None, expanded


def find_cycle(nodes: Iterable[Hashable], edges_of: EdgeLookup) -> Optional[list]:
    """
    Return one cycle in the graph spanned by ``nodes`` (first node repeated
    at the end), or None when the graph is acyclic.
    """
    done: set = set()
    for start in nodes:
        if start in done:
            continue
        path = [start]
        on_path = {start}
        stack = [iter(_edges(edges_of, start))]
        while stack:
            nxt = next(stack[-1], _EXHAUSTED)
            if nxt is _EXHAUSTED:
                stack.pop()
                node = path.pop()
                on_path.discard(node)
                done.add(node)
                continue
            if nxt in on_path:
                return path[path.index(nxt):] + [nxt]
            if nxt in done:
                continue
            path.append(nxt)
            on_path.add(nxt)
            stack.append(iter(_edges(edges_of, nxt)))
    return None


def has_cycles(nodes: Iterable[Hashable], edges_of: EdgeLookup) -> bool:
    return find_cycle(nodes, edges_of) is not None
