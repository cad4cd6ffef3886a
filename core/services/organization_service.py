"""
Organization and membership lookups.

Membership is resolved once per request to build the caller's
RequestContext; the role on it drives every permission check.
"""

import logging
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.models import OrganizationMembership

logger = logging.getLogger(__name__)


class OrganizationService:
    """Service for organization and membership reads."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get_membership(self, user_id: UUID, organization_id: UUID) -> OrganizationMembership | None:
        """
        Get the membership granting ``user_id`` a role in ``organization_id``.

        Returns:
            Membership if the user belongs to the organization, None otherwise.
        """
        row = self.postgres.execute_single(
            """
            SELECT * FROM organization_memberships
            WHERE user_id = %s AND organization_id = %s
            """,
            (user_id, organization_id)
        )

        if row is None:
            return None

        return OrganizationMembership.model_validate(row)
