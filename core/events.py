"""
Domain events.

Frozen records of something that already happened and was committed. They
carry the acting RequestContext so handlers can follow up on behalf of the
same caller, inside the same organization.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from core.models import Task, TaskStatus
from utils.request_context import RequestContext
from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for all domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True, kw_only=True)
class TaskEvent(DomainEvent):
    """Events about one task."""
    ctx: RequestContext
    task: Task


@dataclass(frozen=True, kw_only=True)
class TaskStatusChanged(TaskEvent):
    """A task's status changed, by a user or by dependency tracking."""
    old_status: TaskStatus

    @classmethod
    def create(cls, ctx: RequestContext, task: Task, old_status: TaskStatus) -> "TaskStatusChanged":
        return cls(ctx=ctx, task=task, old_status=old_status)

    @property
    def crossed_done(self) -> bool:
        """Whether the task became DONE or stopped being DONE."""
        return (self.old_status == TaskStatus.DONE) != (self.task.status == TaskStatus.DONE)
