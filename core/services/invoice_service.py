"""
Invoice service for billing.

Invoices are generated from a project: fixed-price projects bill their price
as a single line, hourly projects bill selected time entries at the resolved
hourly rate. Amount computation lives in core.billing; this service loads the
inputs, persists the result and enforces the DRAFT-only mutation rule.

Creation runs under a per-organization advisory lock so two concurrent
requests can never read the same "last invoice number".
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from config import AppConfig
from core.audit import AuditEntry, AuditLogger, AuditAction
from core.billing import (
    BillableEntry,
    LineItemDraft,
    build_line_items,
    compute_totals,
    next_invoice_number,
)
from core.exceptions import InvalidRequestError, InvalidStateError, NotFoundError
from core.models import (
    Client,
    Invoice,
    InvoiceCreate,
    InvoiceFilter,
    InvoicePage,
    InvoiceStatus,
    InvoiceUpdate,
    Organization,
    PricingType,
    Project,
)
from core.permissions import Action, require
from utils.request_context import RequestContext
from utils.timezone import days_from, now_utc

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for invoice operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, config: AppConfig):
        self.postgres = postgres
        self.audit = audit
        self.config = config

    # -------------------------------------------------------------------------
    # Loading & pricing
    # -------------------------------------------------------------------------

    def _load_billing_parties(
        self, tx: Transaction, ctx: RequestContext, data: InvoiceCreate
    ) -> tuple[Organization, Client, Project | None]:
        """Load organization, client and (optional) project, all org-scoped."""
        org_row = tx.execute_single(
            "SELECT * FROM organizations WHERE id = %s",
            (ctx.organization_id,)
        )
        if org_row is None:
            raise NotFoundError(f"Organization {ctx.organization_id} not found")

        client_row = tx.execute_single(
            "SELECT * FROM clients WHERE id = %s AND organization_id = %s",
            (data.client_id, ctx.organization_id)
        )
        if client_row is None:
            raise NotFoundError(f"Client {data.client_id} not found")

        project = None
        if data.project_id is not None:
            project_row = tx.execute_single(
                "SELECT * FROM projects WHERE id = %s AND organization_id = %s",
                (data.project_id, ctx.organization_id)
            )
            if project_row is None:
                raise NotFoundError(f"Project {data.project_id} not found")

            project = Project.model_validate(project_row)
            if project.client_id != data.client_id:
                raise InvalidRequestError(
                    f"Project {data.project_id} doesn't belong to client {data.client_id}"
                )

        return Organization.model_validate(org_row), Client.model_validate(client_row), project

    def _load_billable_entries(
        self, tx: Transaction, ctx: RequestContext, time_entry_ids: list[UUID]
    ) -> list[BillableEntry]:
        """
        Resolve requested ids to billable entries on the organization's tasks.

        Ids that are unknown, non-billable or belong to another organization
        are silently skipped.
        """
        rows = tx.execute(
            """
            SELECT te.id, te.minutes, u.username, t.title
            FROM time_entries te
            JOIN tasks t ON t.id = te.task_id
            JOIN projects p ON p.id = t.project_id
            JOIN users u ON u.id = te.user_id
            WHERE te.id = ANY(%s::uuid[])
              AND te.billable = TRUE
              AND p.organization_id = %s
            ORDER BY te.started_at ASC
            """,
            (list(time_entry_ids), ctx.organization_id)
        )

        return [
            BillableEntry(
                time_entry_id=UUID(str(row["id"])),
                minutes=row["minutes"],
                user_name=row["username"],
                task_title=row["title"],
            )
            for row in rows
        ]

    def _price(
        self, tx: Transaction, ctx: RequestContext, data: InvoiceCreate
    ) -> tuple[Organization, LineItemDraft]:
        organization, client, project = self._load_billing_parties(tx, ctx, data)

        entries: list[BillableEntry] = []
        if project is not None and project.pricing_type == PricingType.HOURLY and data.time_entry_ids:
            entries = self._load_billable_entries(tx, ctx, data.time_entry_ids)

        draft = build_line_items(
            project,
            client,
            organization,
            entries,
            data.time_entry_ids,
            fallback=self.config.fallback_hourly_rate,
        )
        return organization, draft

    def _insert_children(self, tx: Transaction, invoice_id: UUID, draft: LineItemDraft) -> None:
        now = now_utc()

        for position, line in enumerate(draft.lines):
            tx.execute(
                """
                INSERT INTO invoice_lines (
                    id, invoice_id, position, description,
                    quantity, unit_price, amount, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    uuid4(), invoice_id, position, line.description,
                    line.quantity, line.unit_price, line.amount, now
                )
            )

        for entry in draft.time_entries:
            tx.execute(
                """
                INSERT INTO invoice_time_entries (
                    id, invoice_id, time_entry_id,
                    hourly_rate, hours, amount, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    uuid4(), invoice_id, entry.time_entry_id,
                    entry.hourly_rate, entry.hours, entry.amount, now
                )
            )

    def _generate_invoice_number(self, tx: Transaction, ctx: RequestContext) -> str:
        """
        Next invoice number for the caller's organization.

        Must run after tx.lock() on the organization's invoice key.
        """
        last = tx.execute_single(
            """
            SELECT invoice_no FROM invoices
            WHERE organization_id = %s
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (ctx.organization_id,)
        )
        return next_invoice_number(last["invoice_no"] if last else None)

    def _fetch(self, db, ctx: RequestContext, invoice_id: UUID, for_update: bool = False) -> Invoice | None:
        """
        Invoice with its lines and time-entry snapshots, read through ``db``.

        With ``for_update`` the invoice row stays locked until ``db`` (a
        Transaction) ends, so a concurrent send, payment or delete waits
        for the status this transaction read.
        """
        query = "SELECT * FROM invoices WHERE id = %s AND organization_id = %s"
        if for_update:
            query += " FOR UPDATE"
        row = db.execute_single(query, (invoice_id, ctx.organization_id))
        if row is None:
            return None

        lines = db.execute(
            """
            SELECT id, description, quantity, unit_price, amount
            FROM invoice_lines
            WHERE invoice_id = %s
            ORDER BY position ASC
            """,
            (invoice_id,)
        )
        time_entries = db.execute(
            """
            SELECT id, time_entry_id, hourly_rate, hours, amount
            FROM invoice_time_entries
            WHERE invoice_id = %s
            ORDER BY created_at ASC
            """,
            (invoice_id,)
        )

        return Invoice.model_validate({**row, "lines": lines, "time_entries": time_entries})

    def _get_for_update(self, tx: Transaction, ctx: RequestContext, invoice_id: UUID) -> Invoice:
        invoice = self._fetch(tx, ctx, invoice_id, for_update=True)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    # -------------------------------------------------------------------------
    # Generation & recalculation
    # -------------------------------------------------------------------------

    def create(self, ctx: RequestContext, data: InvoiceCreate) -> Invoice:
        """
        Generate a DRAFT invoice for a project.

        Args:
            ctx: Caller context
            data: Client, project, optional due date/notes, time entries to bill

        Returns:
            Created invoice with lines and time-entry snapshots

        Raises:
            PermissionDeniedError: Role may not create invoices
            NotFoundError: Organization, client or project not found
            InvalidRequestError: No project, project of another client,
                or hourly project without time entries
        """
        require(ctx, Action.INVOICE_CREATE)

        with self.postgres.transaction() as tx:
            tx.lock(f"invoices:{ctx.organization_id}")

            organization, draft = self._price(tx, ctx, data)
            totals = compute_totals(draft.subtotal, organization.tax_rate)

            invoice_id = uuid4()
            invoice_no = self._generate_invoice_number(tx, ctx)
            now = now_utc()
            due_date = data.due_date or days_from(now, self.config.invoice_due_days)

            tx.execute(
                """
                INSERT INTO invoices (
                    id, organization_id, client_id, project_id,
                    invoice_no, status, currency,
                    subtotal, tax, total,
                    issue_date, due_date, notes,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s, %s,
                    %s, %s, %s,
                    %s, %s, %s,
                    %s, %s
                )
                """,
                (
                    invoice_id, ctx.organization_id, data.client_id, data.project_id,
                    invoice_no, InvoiceStatus.DRAFT.value,
                    organization.currency or self.config.default_currency,
                    totals.subtotal, totals.tax, totals.total,
                    now, due_date, _clean_notes(data.notes),
                    now, now
                )
            )
            self._insert_children(tx, invoice_id, draft)

            invoice = self._get_for_update(tx, ctx, invoice_id)

            self.audit.log_change(
                tx, ctx,
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.CREATE,
                changes={
                    "created": {
                        "invoice_no": invoice_no,
                        "project_id": str(data.project_id),
                        "subtotal": str(totals.subtotal),
                        "tax": str(totals.tax),
                        "total": str(totals.total),
                        "lines": len(draft.lines),
                        "time_entries": len(draft.time_entries),
                    }
                }
            )

        logger.info(
            "Invoice %s created for organization %s: %d line(s), total %s",
            invoice_no, ctx.organization_id, len(draft.lines), totals.total,
        )
        return invoice

    def update(self, ctx: RequestContext, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Recalculate a DRAFT invoice from scratch.

        Existing lines and time-entry snapshots are replaced. Due date and
        notes keep their old values when not supplied.

        Raises:
            NotFoundError: Invoice, client or project not found
            InvalidStateError: Invoice is not DRAFT
            InvalidRequestError: Same validation as create()
        """
        require(ctx, Action.INVOICE_UPDATE)

        with self.postgres.transaction() as tx:
            current = self._get_for_update(tx, ctx, invoice_id)
            if not current.is_draft:
                raise InvalidStateError(
                    f"Invoice {current.invoice_no} is {current.status.value}; "
                    "only DRAFT invoices can be modified"
                )

            organization, draft = self._price(tx, ctx, data)
            totals = compute_totals(draft.subtotal, organization.tax_rate)

            tx.execute("DELETE FROM invoice_lines WHERE invoice_id = %s", (invoice_id,))
            tx.execute("DELETE FROM invoice_time_entries WHERE invoice_id = %s", (invoice_id,))

            tx.execute(
                """
                UPDATE invoices
                SET client_id = %s, project_id = %s, due_date = %s, notes = %s,
                    subtotal = %s, tax = %s, total = %s, updated_at = %s
                WHERE id = %s
                """,
                (
                    data.client_id, data.project_id,
                    data.due_date or current.due_date,
                    _clean_notes(data.notes) or current.notes,
                    totals.subtotal, totals.tax, totals.total, now_utc(),
                    invoice_id
                )
            )
            self._insert_children(tx, invoice_id, draft)

            updated = self._get_for_update(tx, ctx, invoice_id)

            self.audit.log_change(
                tx, ctx,
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes={
                    "subtotal": {"old": str(current.subtotal), "new": str(totals.subtotal)},
                    "tax": {"old": str(current.tax), "new": str(totals.tax)},
                    "total": {"old": str(current.total), "new": str(totals.total)},
                    "lines": {"old": len(current.lines), "new": len(draft.lines)},
                }
            )

        return updated

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, ctx: RequestContext, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID with lines and time entries.

        Returns:
            Invoice if found in the caller's organization, None otherwise.
        """
        require(ctx, Action.INVOICE_VIEW)
        return self._fetch(self.postgres, ctx, invoice_id)

    def list(self, ctx: RequestContext, filters: InvoiceFilter) -> InvoicePage:
        """
        List invoices newest first, with pagination and a summary.

        The summary (total amount, status breakdown) covers every invoice
        matching the filters, not just the returned page.
        """
        require(ctx, Action.INVOICE_VIEW)

        conditions = ["organization_id = %s"]
        params: list = [ctx.organization_id]

        if filters.client_id is not None:
            conditions.append("client_id = %s")
            params.append(filters.client_id)
        if filters.project_id is not None:
            conditions.append("project_id = %s")
            params.append(filters.project_id)
        if filters.status is not None:
            conditions.append("status = %s")
            params.append(filters.status.value)
        if filters.start_date is not None:
            conditions.append("issue_date >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            conditions.append("issue_date <= %s")
            params.append(filters.end_date)

        where = " AND ".join(conditions)

        by_status = self.postgres.execute(
            f"""
            SELECT status, COUNT(*) AS count, COALESCE(SUM(total), 0) AS amount
            FROM invoices
            WHERE {where}
            GROUP BY status
            """,
            tuple(params)
        )
        status_breakdown = {row["status"]: row["count"] for row in by_status}
        total_items = sum(status_breakdown.values())
        total_amount = sum((Decimal(row["amount"]) for row in by_status), Decimal("0"))

        offset = (filters.page - 1) * filters.limit
        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params + [filters.limit, offset])
        )
        invoices = [Invoice.model_validate(row) for row in rows]

        total_pages = -(-total_items // filters.limit)
        return InvoicePage(
            invoices=invoices,
            current_page=filters.page,
            total_pages=total_pages,
            total_items=total_items,
            items_per_page=filters.limit,
            has_next_page=filters.page < total_pages,
            has_prev_page=filters.page > 1,
            total_amount=total_amount,
            status_breakdown=status_breakdown,
        )

    def history(self, ctx: RequestContext, invoice_id: UUID) -> list[AuditEntry]:
        """
        Audit trail of an invoice, newest first.

        Raises:
            NotFoundError: Invoice not in the caller's organization
        """
        require(ctx, Action.INVOICE_VIEW)

        exists = self.postgres.execute_single(
            "SELECT id FROM invoices WHERE id = %s AND organization_id = %s",
            (invoice_id, ctx.organization_id)
        )
        if exists is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return self.audit.get_entity_history(ctx, "invoice", invoice_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _set_status(
        self,
        tx: Transaction,
        ctx: RequestContext,
        current: Invoice,
        new_status: InvoiceStatus,
    ) -> Invoice:
        tx.execute(
            "UPDATE invoices SET status = %s, updated_at = %s WHERE id = %s",
            (new_status.value, now_utc(), current.id)
        )
        updated = current.model_copy(update={"status": new_status})

        self.audit.log_change(
            tx, ctx,
            entity_type="invoice",
            entity_id=current.id,
            action=AuditAction.UPDATE,
            changes={"status": {"old": current.status.value, "new": new_status.value}}
        )
        return updated

    def send(self, ctx: RequestContext, invoice_id: UUID) -> Invoice:
        """
        Issue a DRAFT invoice to the client (DRAFT -> SENT).

        Raises:
            NotFoundError: Invoice not found
            InvalidStateError: Invoice is not DRAFT
        """
        require(ctx, Action.INVOICE_SEND)

        with self.postgres.transaction() as tx:
            current = self._get_for_update(tx, ctx, invoice_id)
            if not current.is_draft:
                raise InvalidStateError(
                    f"Invoice {current.invoice_no} is {current.status.value}; only DRAFT invoices can be sent"
                )
            return self._set_status(tx, ctx, current, InvoiceStatus.SENT)

    def mark_paid(self, ctx: RequestContext, invoice_id: UUID) -> Invoice:
        """
        Mark a SENT invoice as paid.

        Raises:
            NotFoundError: Invoice not found
            InvalidStateError: Invoice is DRAFT, CANCELLED or already PAID
        """
        require(ctx, Action.INVOICE_MARK_PAID)

        with self.postgres.transaction() as tx:
            current = self._get_for_update(tx, ctx, invoice_id)

            if current.status == InvoiceStatus.PAID:
                raise InvalidStateError(f"Invoice {current.invoice_no} is already marked as paid")
            if current.status == InvoiceStatus.DRAFT:
                raise InvalidStateError(
                    f"Cannot mark DRAFT invoice {current.invoice_no} as paid. Send the invoice first."
                )
            if current.status == InvoiceStatus.CANCELLED:
                raise InvalidStateError(f"Cannot mark CANCELLED invoice {current.invoice_no} as paid")

            return self._set_status(tx, ctx, current, InvoiceStatus.PAID)

    def cancel(self, ctx: RequestContext, invoice_id: UUID) -> Invoice:
        """
        Cancel a DRAFT or SENT invoice.

        Raises:
            NotFoundError: Invoice not found
            InvalidStateError: Invoice is PAID or already CANCELLED
        """
        require(ctx, Action.INVOICE_CANCEL)

        with self.postgres.transaction() as tx:
            current = self._get_for_update(tx, ctx, invoice_id)
            if current.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
                raise InvalidStateError(
                    f"Invoice {current.invoice_no} is {current.status.value} and cannot be cancelled"
                )
            return self._set_status(tx, ctx, current, InvoiceStatus.CANCELLED)

    def delete(self, ctx: RequestContext, invoice_id: UUID) -> Invoice:
        """
        Delete a DRAFT invoice with its lines and time-entry snapshots.

        Returns:
            The invoice as it was before deletion

        Raises:
            NotFoundError: Invoice not found
            InvalidStateError: Invoice is not DRAFT
        """
        require(ctx, Action.INVOICE_DELETE)

        with self.postgres.transaction() as tx:
            current = self._get_for_update(tx, ctx, invoice_id)
            if not current.is_draft:
                raise InvalidStateError(
                    f"Invoice {current.invoice_no} is {current.status.value}; "
                    "only DRAFT invoices can be deleted"
                )

            tx.execute("DELETE FROM invoice_time_entries WHERE invoice_id = %s", (invoice_id,))
            tx.execute("DELETE FROM invoice_lines WHERE invoice_id = %s", (invoice_id,))
            tx.execute("DELETE FROM invoices WHERE id = %s", (invoice_id,))

            self.audit.log_change(
                tx, ctx,
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.DELETE,
                changes={"deleted": current.model_dump(mode="json", exclude={"lines", "time_entries"})}
            )

        return current


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    return notes.strip() or None
