"""Explicit per-request identity passed into every service operation."""

from dataclasses import dataclass
from uuid import UUID

from core.models.organization import Role


@dataclass(frozen=True)
class RequestContext:
    """
    Who is acting, in which organization, with which role.

    Built once per request from the verified token and the caller's
    OrganizationMembership row. Services take it as their first argument
    and scope every query by ``organization_id``.
    """

    user_id: UUID
    organization_id: UUID
    role: Role

    @property
    def is_manager(self) -> bool:
        """OWNER, ADMIN and MANAGER can act on other members' records."""
        return self.role in (Role.OWNER, Role.ADMIN, Role.MANAGER)
