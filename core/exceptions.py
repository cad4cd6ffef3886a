"""Typed exceptions for domain failures.

All subclass ValueError so callers that only care about "bad input" can keep
catching ValueError. api.errors maps each type to an HTTP status.
"""


class CRMError(ValueError):
    """Base class for domain errors raised by services."""


class NotFoundError(CRMError):
    """Entity does not exist or belongs to another organization."""


class ConflictError(CRMError):
    """Request collides with existing state (duplicate edge, running timer)."""


class InvalidRequestError(CRMError):
    """Request is well-formed but semantically unusable."""


class InvalidStateError(CRMError):
    """Entity is in the wrong lifecycle state for the requested mutation."""


class CycleDetectedError(CRMError):
    """Adding a dependency edge would close a directed cycle."""

    def __init__(self, task_id, depends_on_task_id):
        self.task_id = task_id
        self.depends_on_task_id = depends_on_task_id
        super().__init__(
            f"Circular dependency detected: task {depends_on_task_id} "
            f"already depends on task {task_id}"
        )


class PermissionDeniedError(CRMError):
    """Caller's role does not allow the action."""

    def __init__(self, role, action):
        self.role = role
        self.action = action
        super().__init__(f"Role {role} is not allowed to {action}")
