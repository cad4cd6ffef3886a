"""
Role-based authorization policy.

One table maps each action to the roles allowed to perform it. Services call
require() at the top of every operation instead of repeating allow-lists.
"""

from enum import Enum

from core.exceptions import PermissionDeniedError
from core.models import Role


class Action(str, Enum):
    """Operations subject to role checks."""

    INVOICE_VIEW = "view invoices"
    INVOICE_CREATE = "create invoices"
    INVOICE_UPDATE = "update invoices"
    INVOICE_SEND = "send invoices"
    INVOICE_MARK_PAID = "mark invoices as paid"
    INVOICE_CANCEL = "cancel invoices"
    INVOICE_DELETE = "delete invoices"

    PAYMENT_VIEW = "view payments"
    PAYMENT_CREATE = "create payments"
    PAYMENT_UPDATE = "update payments"

    TIME_TRACK = "track time"
    TIME_MANAGE_ALL = "manage other members' time entries"

    DEPENDENCY_VIEW = "view task dependencies"
    DEPENDENCY_MANAGE = "manage task dependencies"

    TASK_UPDATE_STATUS = "update task status"


_MANAGERS = frozenset({Role.OWNER, Role.ADMIN, Role.MANAGER})
_STAFF = _MANAGERS | {Role.MEMBER}
_EVERYONE = frozenset(Role)

POLICY: dict[Action, frozenset[Role]] = {
    Action.INVOICE_VIEW: _MANAGERS,
    Action.INVOICE_CREATE: _MANAGERS,
    Action.INVOICE_UPDATE: _MANAGERS,
    Action.INVOICE_SEND: _MANAGERS,
    Action.INVOICE_MARK_PAID: _MANAGERS,
    Action.INVOICE_CANCEL: _MANAGERS,
    Action.INVOICE_DELETE: frozenset({Role.OWNER}),
    Action.PAYMENT_VIEW: _MANAGERS,
    Action.PAYMENT_CREATE: _MANAGERS,
    Action.PAYMENT_UPDATE: frozenset({Role.OWNER, Role.ADMIN}),
    Action.TIME_TRACK: _STAFF,
    Action.TIME_MANAGE_ALL: _MANAGERS,
    Action.DEPENDENCY_VIEW: _EVERYONE,
    Action.DEPENDENCY_MANAGE: _MANAGERS,
    Action.TASK_UPDATE_STATUS: _STAFF,
}


def is_allowed(role: Role, action: Action) -> bool:
    """Whether ``role`` may perform ``action``. Unknown actions are denied."""
    return role in POLICY.get(action, frozenset())


def require(ctx, action: Action) -> None:
    """
    Raise PermissionDeniedError unless the context's role allows the action.

    Args:
        ctx: RequestContext of the caller
        action: Action being attempted
    """
    if not is_allowed(ctx.role, action):
        raise PermissionDeniedError(ctx.role.value, action.value)
