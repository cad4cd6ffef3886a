"""Pydantic models for auth domain."""

from uuid import UUID

from pydantic import BaseModel


class Principal(BaseModel):
    """
    Identity proven by a verified access token.

    Carries no role: the role comes from the user's OrganizationMembership,
    looked up per request so revoked or changed memberships apply at once.
    """

    user_id: UUID
    organization_id: UUID

    model_config = {"frozen": True}
