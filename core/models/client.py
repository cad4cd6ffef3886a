"""Client (billed customer) domain model."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class Client(BaseModel):
    """A customer of the organization that projects are billed to."""

    id: UUID
    organization_id: UUID
    name: str
    company: str | None = None
    email: str | None = None
    custom_hourly_rate: Decimal | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
