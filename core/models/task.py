"""Task and task dependency domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class TaskStatus(str, Enum):
    """Task workflow status. BLOCKED is managed by dependency tracking."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class Task(BaseModel):
    """Unit of work inside a project."""

    id: UUID
    project_id: UUID
    title: str
    status: TaskStatus
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskStatusUpdate(BaseModel):
    """User-requested status change."""

    status: TaskStatus


class TaskDependencyCreate(BaseModel):
    """Task ``task_id`` cannot be unblocked until ``depends_on_task_id`` is DONE."""

    task_id: UUID
    depends_on_task_id: UUID


class TaskDependency(BaseModel):
    """Directed dependency edge as stored."""

    id: UUID
    task_id: UUID
    depends_on_task_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskDependencyDetail(TaskDependency):
    """Edge plus the title and status of the task on its other end."""

    related_task_title: str
    related_task_status: TaskStatus
