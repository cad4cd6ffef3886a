"""
Handler for TaskStatusChanged events.

When a task becomes DONE, or is reopened after being DONE, every task that
depends on it gets its dependency-driven status recomputed. Recomputed tasks
publish their own TaskStatusChanged, so the update cascades down the graph.
"""

import logging
from typing import Callable

from core.events import TaskStatusChanged

logger = logging.getLogger(__name__)


def handle_task_status_changed(dependency_service) -> Callable:
    """
    Factory that returns a TaskStatusChanged handler.

    Args:
        dependency_service: TaskDependencyService instance

    Returns:
        Handler callable that refreshes dependents of the changed task
    """

    def handler(event: TaskStatusChanged):
        if not event.crossed_done:
            return

        dependent_ids = dependency_service.dependent_task_ids(event.ctx, event.task.id)
        if dependent_ids:
            logger.info(
                "Task %s is now %s; re-evaluating %d dependent task(s)",
                event.task.id, event.task.status.value, len(dependent_ids),
            )

        for task_id in dependent_ids:
            dependency_service.refresh_task_status(event.ctx, task_id)

    return handler
