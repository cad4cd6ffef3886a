"""Organization and membership domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class Role(str, Enum):
    """Role a user holds within one organization."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"
    CLIENT = "CLIENT"


class Organization(BaseModel):
    """Tenant record carrying billing defaults."""

    id: UUID
    name: str
    currency: str | None = None
    default_hourly_rate: Decimal | None = None
    tax_rate: Decimal | None = None  # Percentage: 10 = 10%
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrganizationMembership(BaseModel):
    """Grants a user a role within one organization."""

    id: UUID
    user_id: UUID
    organization_id: UUID
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}
