"""
Task dependency graph rules.

An edge (task_id, depends_on_task_id) means task_id stays blocked until
depends_on_task_id is DONE. The edge set must remain acyclic.
"""

from collections import defaultdict
from typing import Iterable
from uuid import UUID

from core.models import TaskStatus


def build_adjacency(edges: Iterable[tuple[UUID, UUID]]) -> dict[UUID, list[UUID]]:
    """Map each task id to the ids it depends on."""
    adjacency: dict[UUID, list[UUID]] = defaultdict(list)
    for task_id, depends_on_task_id in edges:
        adjacency[task_id].append(depends_on_task_id)
    return dict(adjacency)


def would_create_cycle(
    adjacency: dict[UUID, list[UUID]],
    task_id: UUID,
    depends_on_task_id: UUID,
) -> bool:
    """
    Whether adding task_id -> depends_on_task_id closes a directed cycle.

    Checks the direct reverse edge first, then walks "depends on" edges from
    depends_on_task_id with an explicit stack. Reaching task_id means the new
    edge would loop back to its source. A self edge is always a cycle.
    """
    if task_id == depends_on_task_id:
        return True

    if task_id in adjacency.get(depends_on_task_id, ()):
        return True

    visited: set[UUID] = set()
    stack = [depends_on_task_id]

    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)

        if current == task_id:
            return True

        for next_id in adjacency.get(current, ()):
            if next_id not in visited:
                stack.append(next_id)

    return False


def resolve_dependency_status(
    current: TaskStatus,
    dependency_statuses: Iterable[TaskStatus],
) -> TaskStatus | None:
    """
    New status for a task given its dependencies, or None if unchanged.

    All dependencies DONE (or none at all) releases a BLOCKED task to TODO.
    Any unfinished dependency blocks the task, whatever its status.
    """
    all_done = all(status == TaskStatus.DONE for status in dependency_statuses)

    if all_done and current == TaskStatus.BLOCKED:
        return TaskStatus.TODO
    if not all_done and current != TaskStatus.BLOCKED:
        return TaskStatus.BLOCKED
    return None
