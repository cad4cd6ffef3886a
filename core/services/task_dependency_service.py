"""
Task dependency service.

Maintains the organization's "task depends on task" edge set, keeps it
acyclic, and keeps each task's BLOCKED status in line with its dependencies.

Edge insertion runs under a per-organization advisory lock: the cycle check
and the insert see the same edge set, so two concurrent opposite-direction
inserts cannot both pass validation.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction
from core.dependency_graph import build_adjacency, resolve_dependency_status, would_create_cycle
from core.event_bus import EventBus
from core.events import TaskStatusChanged
from core.exceptions import ConflictError, CycleDetectedError, NotFoundError
from core.models import (
    Task,
    TaskDependency,
    TaskDependencyCreate,
    TaskDependencyDetail,
    TaskStatus,
)
from core.permissions import Action, require
from utils.request_context import RequestContext
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


_TASK_IN_ORG = """
    SELECT t.* FROM tasks t
    JOIN projects p ON p.id = t.project_id
    WHERE t.id = %s AND p.organization_id = %s
"""


def get_task_in_org(db, ctx: RequestContext, task_id: UUID) -> Task | None:
    """Task by id if it belongs to one of the caller's organization's projects."""
    row = db.execute_single(_TASK_IN_ORG, (task_id, ctx.organization_id))
    return Task.model_validate(row) if row else None


class TaskDependencyService:
    """Service for task dependency edges and dependency-driven status."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, event_bus: EventBus):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus

    def _require_task(self, tx: Transaction, ctx: RequestContext, task_id: UUID) -> Task:
        task = get_task_in_org(tx, ctx, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def _organization_edges(self, tx: Transaction, ctx: RequestContext) -> list[tuple[UUID, UUID]]:
        rows = tx.execute(
            """
            SELECT td.task_id, td.depends_on_task_id
            FROM task_dependencies td
            JOIN tasks t ON t.id = td.task_id
            JOIN projects p ON p.id = t.project_id
            WHERE p.organization_id = %s
            """,
            (ctx.organization_id,)
        )
        return [(UUID(str(row["task_id"])), UUID(str(row["depends_on_task_id"]))) for row in rows]

    # -------------------------------------------------------------------------
    # Status updater
    # -------------------------------------------------------------------------

    def _apply_dependency_status(
        self, tx: Transaction, ctx: RequestContext, task_id: UUID
    ) -> TaskStatusChanged | None:
        """
        Flip the task between BLOCKED and TODO to match its dependencies.

        Returns the event to publish once ``tx`` commits, or None when the
        status did not change.
        """
        task = self._require_task(tx, ctx, task_id)

        rows = tx.execute(
            """
            SELECT t.status
            FROM task_dependencies td
            JOIN tasks t ON t.id = td.depends_on_task_id
            WHERE td.task_id = %s
            """,
            (task_id,)
        )
        new_status = resolve_dependency_status(
            task.status, [TaskStatus(row["status"]) for row in rows]
        )
        if new_status is None:
            return None

        tx.execute(
            "UPDATE tasks SET status = %s, updated_at = %s WHERE id = %s",
            (new_status.value, now_utc(), task_id)
        )
        self.audit.log_change(
            tx, ctx,
            entity_type="task",
            entity_id=task_id,
            action=AuditAction.UPDATE,
            changes={
                "status": {"old": task.status.value, "new": new_status.value},
                "reason": "dependencies",
            }
        )

        logger.info("Task %s moved %s -> %s by dependency tracking", task_id, task.status.value, new_status.value)
        return TaskStatusChanged.create(ctx, task.model_copy(update={"status": new_status}), task.status)

    def refresh_task_status(self, ctx: RequestContext, task_id: UUID) -> None:
        """
        Recompute one task's dependency-driven status in its own transaction.

        System operation: no role check, the caller already changed something
        this task depends on.
        """
        with self.postgres.transaction() as tx:
            event = self._apply_dependency_status(tx, ctx, task_id)

        if event is not None:
            self.event_bus.publish(event)

    def dependent_task_ids(self, ctx: RequestContext, task_id: UUID) -> list[UUID]:
        """Ids of tasks in the organization that depend on ``task_id``."""
        rows = self.postgres.execute(
            """
            SELECT td.task_id
            FROM task_dependencies td
            JOIN tasks t ON t.id = td.task_id
            JOIN projects p ON p.id = t.project_id
            WHERE td.depends_on_task_id = %s AND p.organization_id = %s
            """,
            (task_id, ctx.organization_id)
        )
        return [UUID(str(row["task_id"])) for row in rows]

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def create(self, ctx: RequestContext, data: TaskDependencyCreate) -> TaskDependency:
        """
        Add edge "task_id depends on depends_on_task_id".

        Raises:
            PermissionDeniedError: Role may not manage dependencies
            NotFoundError: Either task is not in the caller's organization
            ConflictError: Edge already exists
            CycleDetectedError: Edge would close a cycle (self edges included)
        """
        require(ctx, Action.DEPENDENCY_MANAGE)

        with self.postgres.transaction() as tx:
            tx.lock(f"task-dependencies:{ctx.organization_id}")

            self._require_task(tx, ctx, data.task_id)
            self._require_task(tx, ctx, data.depends_on_task_id)

            existing = tx.execute_single(
                "SELECT id FROM task_dependencies WHERE task_id = %s AND depends_on_task_id = %s",
                (data.task_id, data.depends_on_task_id)
            )
            if existing:
                raise ConflictError("Dependency already exists")

            adjacency = build_adjacency(self._organization_edges(tx, ctx))
            if would_create_cycle(adjacency, data.task_id, data.depends_on_task_id):
                raise CycleDetectedError(data.task_id, data.depends_on_task_id)

            row = tx.execute_single(
                """
                INSERT INTO task_dependencies (id, task_id, depends_on_task_id, created_at)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (uuid4(), data.task_id, data.depends_on_task_id, now_utc())
            )
            dependency = TaskDependency.model_validate(row)

            self.audit.log_change(
                tx, ctx,
                entity_type="task_dependency",
                entity_id=dependency.id,
                action=AuditAction.CREATE,
                changes={"created": dependency.model_dump(mode="json")}
            )

            event = self._apply_dependency_status(tx, ctx, data.task_id)

        if event is not None:
            self.event_bus.publish(event)
        return dependency

    def remove(self, ctx: RequestContext, dependency_id: UUID) -> TaskDependency:
        """
        Delete an edge and re-evaluate its dependent task.

        Returns:
            The deleted edge

        Raises:
            NotFoundError: Edge does not exist in the caller's organization
        """
        require(ctx, Action.DEPENDENCY_MANAGE)

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                """
                SELECT td.* FROM task_dependencies td
                JOIN tasks t ON t.id = td.task_id
                JOIN projects p ON p.id = t.project_id
                WHERE td.id = %s AND p.organization_id = %s
                """,
                (dependency_id, ctx.organization_id)
            )
            if row is None:
                raise NotFoundError(f"Dependency {dependency_id} not found")
            dependency = TaskDependency.model_validate(row)

            tx.execute("DELETE FROM task_dependencies WHERE id = %s", (dependency_id,))

            self.audit.log_change(
                tx, ctx,
                entity_type="task_dependency",
                entity_id=dependency_id,
                action=AuditAction.DELETE,
                changes={"deleted": dependency.model_dump(mode="json")}
            )

            event = self._apply_dependency_status(tx, ctx, dependency.task_id)

        if event is not None:
            self.event_bus.publish(event)
        return dependency

    def list_dependencies(self, ctx: RequestContext, task_id: UUID) -> list[TaskDependencyDetail]:
        """Edges from ``task_id`` to the tasks it depends on."""
        require(ctx, Action.DEPENDENCY_VIEW)

        if get_task_in_org(self.postgres, ctx, task_id) is None:
            raise NotFoundError(f"Task {task_id} not found")

        rows = self.postgres.execute(
            """
            SELECT td.*, t.title AS related_task_title, t.status AS related_task_status
            FROM task_dependencies td
            JOIN tasks t ON t.id = td.depends_on_task_id
            WHERE td.task_id = %s
            ORDER BY td.created_at ASC
            """,
            (task_id,)
        )
        return [TaskDependencyDetail.model_validate(row) for row in rows]

    def list_dependents(self, ctx: RequestContext, task_id: UUID) -> list[TaskDependencyDetail]:
        """Edges from tasks that depend on ``task_id``."""
        require(ctx, Action.DEPENDENCY_VIEW)

        if get_task_in_org(self.postgres, ctx, task_id) is None:
            raise NotFoundError(f"Task {task_id} not found")

        rows = self.postgres.execute(
            """
            SELECT td.*, t.title AS related_task_title, t.status AS related_task_status
            FROM task_dependencies td
            JOIN tasks t ON t.id = td.task_id
            WHERE td.depends_on_task_id = %s
            ORDER BY td.created_at ASC
            """,
            (task_id,)
        )
        return [TaskDependencyDetail.model_validate(row) for row in rows]
