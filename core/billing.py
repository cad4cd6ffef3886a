"""
Invoice amount computation.

Pure functions, no database access. InvoiceService loads the project, client,
organization and billable time entries, then hands them here to get line
items, time-entry snapshots and totals.

Rounding: hourly line amounts and tax are rounded half-up to cents as they
are computed. Subtotal is the exact sum of the rounded line amounts and
total = subtotal + tax, so stored figures always add up.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID

from core.exceptions import InvalidRequestError
from core.models import InvoiceLine, InvoiceTimeEntry, PricingType

FALLBACK_HOURLY_RATE = Decimal("50")
INVOICE_PREFIX = "INV-"

_CENT = Decimal("0.01")
_HOURS_QUANTUM = Decimal("0.0001")
_MINUTES_PER_HOUR = Decimal(60)


@dataclass(frozen=True)
class BillableEntry:
    """A finished, billable time entry with the names needed for its line."""

    time_entry_id: UUID
    minutes: int | None
    user_name: str
    task_title: str


@dataclass
class LineItemDraft:
    """Lines and snapshots produced for one invoice, plus their running subtotal."""

    lines: list[InvoiceLine] = field(default_factory=list)
    time_entries: list[InvoiceTimeEntry] = field(default_factory=list)
    subtotal: Decimal = Decimal("0")


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def resolve_hourly_rate(project, client, organization, fallback: Decimal = FALLBACK_HOURLY_RATE) -> Decimal:
    """
    Pick the hourly rate for a billed time entry.

    First non-null of: project rate, client custom rate, organization
    default rate, then the fallback constant. Never fails.
    """
    candidates = (
        getattr(project, "hourly_rate", None),
        getattr(client, "custom_hourly_rate", None),
        getattr(organization, "default_hourly_rate", None),
    )
    for rate in candidates:
        if rate is not None:
            return _to_decimal(rate)
    return _to_decimal(fallback)


def build_fixed_price_lines(project) -> LineItemDraft:
    """One line, quantity 1, priced at the project's fixed price (0 if unset)."""
    price = _to_decimal(project.fixed_price) if project.fixed_price is not None else Decimal("0")
    line = InvoiceLine(
        description=f"{project.name} - Fixed Price",
        quantity=Decimal("1"),
        unit_price=price,
        amount=price,
    )
    return LineItemDraft(lines=[line], time_entries=[], subtotal=price)


def build_hourly_lines(
    entries: list[BillableEntry],
    project,
    client,
    organization,
    fallback: Decimal = FALLBACK_HOURLY_RATE,
) -> LineItemDraft:
    """One line and one frozen snapshot per billable entry."""
    draft = LineItemDraft()
    rate = resolve_hourly_rate(project, client, organization, fallback)

    for entry in entries:
        minutes = Decimal(entry.minutes or 0)
        hours = (minutes / _MINUTES_PER_HOUR).quantize(_HOURS_QUANTUM, rounding=ROUND_HALF_UP)
        amount = (minutes * rate / _MINUTES_PER_HOUR).quantize(_CENT, rounding=ROUND_HALF_UP)

        draft.lines.append(InvoiceLine(
            description=f"{entry.user_name} - {entry.task_title}",
            quantity=hours,
            unit_price=rate,
            amount=amount,
        ))
        draft.time_entries.append(InvoiceTimeEntry(
            time_entry_id=entry.time_entry_id,
            hourly_rate=rate,
            hours=hours,
            amount=amount,
        ))
        draft.subtotal += amount

    return draft


def build_line_items(
    project,
    client,
    organization,
    entries: list[BillableEntry],
    time_entry_ids: list[UUID],
    fallback: Decimal = FALLBACK_HOURLY_RATE,
) -> LineItemDraft:
    """
    Choose the pricing strategy and build the invoice's lines.

    Args:
        project: Project being invoiced (required)
        client: Client being invoiced
        organization: Organization supplying default rate
        entries: Resolved billable entries (hourly projects only)
        time_entry_ids: Ids the caller asked to bill
        fallback: Rate used when nothing else is set

    Raises:
        InvalidRequestError: No project, or hourly project without time entries
    """
    if project is None:
        raise InvalidRequestError("Project ID is required for invoice generation")

    if project.pricing_type == PricingType.FIXED:
        return build_fixed_price_lines(project)

    if not time_entry_ids:
        raise InvalidRequestError("Time entry IDs are required for hourly projects")

    return build_hourly_lines(entries, project, client, organization, fallback)


def compute_totals(subtotal: Decimal, tax_rate) -> InvoiceTotals:
    """
    tax = subtotal * tax_rate / 100, total = subtotal + tax. Missing rate is 0.

    Tax is rounded half-up to the cent, so the formula holds to the cent:
    a 0.05 subtotal at 10% carries 0.01 tax, not 0.005.
    """
    subtotal = _to_decimal(subtotal)
    rate = _to_decimal(tax_rate) if tax_rate is not None else Decimal("0")
    tax = (subtotal * rate / Decimal(100)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def next_invoice_number(last_invoice_no: str | None) -> str:
    """
    Next sequential invoice number after ``last_invoice_no``.

    "INV-007" -> "INV-008". No previous invoice -> "INV-001". A suffix that
    does not parse counts as 0.
    """
    if not last_invoice_no:
        return f"{INVOICE_PREFIX}001"

    try:
        last_number = int(last_invoice_no.split("-")[1])
    except (ValueError, IndexError):
        last_number = 0

    return f"{INVOICE_PREFIX}{last_number + 1:03d}"
