"""Project domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class PricingType(str, Enum):
    """How a project is invoiced."""

    FIXED = "FIXED"
    HOURLY = "HOURLY"


class Project(BaseModel):
    """Client project. Pricing type selects the invoice computation strategy."""

    id: UUID
    organization_id: UUID
    client_id: UUID
    name: str
    pricing_type: PricingType
    fixed_price: Decimal | None = None
    hourly_rate: Decimal | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
