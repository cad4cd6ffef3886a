"""Invoice domain models.

Money is carried as Decimal end to end (PostgreSQL NUMERIC). Line amounts and
tax are rounded to cents when computed; see core.billing.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class InvoiceCreate(BaseModel):
    """Data required to generate an invoice."""

    client_id: UUID
    project_id: UUID | None = None
    due_date: datetime | None = None
    notes: str | None = Field(None, max_length=2000)
    time_entry_ids: list[UUID] = Field(default_factory=list)


class InvoiceUpdate(InvoiceCreate):
    """Recalculation request for a DRAFT invoice. Same shape as creation."""


class InvoiceFilter(BaseModel):
    """Query filters for listing invoices."""

    client_id: UUID | None = None
    project_id: UUID | None = None
    status: InvoiceStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class InvoiceLine(BaseModel):
    """One billed line. Fixed-price lines always have quantity 1."""

    id: UUID | None = None
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal

    model_config = {"from_attributes": True}


class InvoiceTimeEntry(BaseModel):
    """Frozen billing snapshot of a time entry at invoicing time."""

    id: UUID | None = None
    time_entry_id: UUID
    hourly_rate: Decimal
    hours: Decimal
    amount: Decimal

    model_config = {"from_attributes": True}


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    organization_id: UUID
    client_id: UUID
    project_id: UUID | None
    invoice_no: str
    status: InvoiceStatus
    currency: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    issue_date: datetime
    due_date: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    lines: list[InvoiceLine] = Field(default_factory=list)
    time_entries: list[InvoiceTimeEntry] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @property
    def is_draft(self) -> bool:
        """Only draft invoices can be recalculated or deleted."""
        return self.status == InvoiceStatus.DRAFT


class InvoicePage(BaseModel):
    """One page of invoices plus pagination and a summary of all matching invoices."""

    invoices: list[Invoice]
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool
    total_amount: Decimal
    status_breakdown: dict[str, int]
