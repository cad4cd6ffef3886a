"""
Task service.

Only status changes are handled here; BLOCKED belongs to dependency
tracking and cannot be entered or left by hand while dependencies are
incomplete.
"""

import logging
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.event_bus import EventBus
from core.events import TaskStatusChanged
from core.exceptions import InvalidRequestError, InvalidStateError, NotFoundError
from core.models import Task, TaskStatus, TaskStatusUpdate
from core.permissions import Action, require
from core.services.task_dependency_service import get_task_in_org
from utils.request_context import RequestContext
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class TaskService:
    """Service for task status operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, event_bus: EventBus):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus

    def update_status(self, ctx: RequestContext, task_id: UUID, data: TaskStatusUpdate) -> Task:
        """
        Apply a user-requested status change.

        Publishes TaskStatusChanged after commit so dependent tasks are
        re-evaluated.

        Raises:
            NotFoundError: Task not in the caller's organization
            InvalidRequestError: BLOCKED was requested
            InvalidStateError: Task still has unfinished dependencies
        """
        require(ctx, Action.TASK_UPDATE_STATUS)

        if data.status == TaskStatus.BLOCKED:
            raise InvalidRequestError("BLOCKED status is set automatically from task dependencies")

        with self.postgres.transaction() as tx:
            task = get_task_in_org(tx, ctx, task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")

            if task.status == data.status:
                return task

            pending = tx.execute_single(
                """
                SELECT COUNT(*) AS pending
                FROM task_dependencies td
                JOIN tasks t ON t.id = td.depends_on_task_id
                WHERE td.task_id = %s AND t.status <> %s
                """,
                (task_id, TaskStatus.DONE.value)
            )
            if pending and pending["pending"]:
                raise InvalidStateError(
                    f"Task {task_id} has {pending['pending']} unfinished dependenc"
                    f"{'y' if pending['pending'] == 1 else 'ies'}"
                )

            tx.execute(
                "UPDATE tasks SET status = %s, updated_at = %s WHERE id = %s",
                (data.status.value, now_utc(), task_id)
            )
            updated = task.model_copy(update={"status": data.status})

            self.audit.log_change(
                tx, ctx,
                entity_type="task",
                entity_id=task_id,
                action=AuditAction.UPDATE,
                changes={"status": {"old": task.status.value, "new": data.status.value}}
            )

        logger.info("Task %s status %s -> %s", task_id, task.status.value, data.status.value)
        self.event_bus.publish(TaskStatusChanged.create(ctx, updated, task.status))
        return updated
