"""Payment domain models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PaymentCreate(BaseModel):
    """Record a payment against an invoice."""

    invoice_id: UUID
    amount: Decimal = Field(..., gt=0)
    method: str = Field(..., min_length=1, max_length=50)
    reference: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=2000)


class PaymentUpdate(BaseModel):
    """Editable payment details. All fields optional."""

    method: str | None = Field(None, min_length=1, max_length=50)
    reference: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("method")
    @classmethod
    def method_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("Payment method cannot be cleared")
        return value


class Payment(BaseModel):
    """Full payment entity as stored."""

    id: UUID
    invoice_id: UUID
    amount: Decimal
    method: str
    reference: str | None
    notes: str | None
    paid_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
