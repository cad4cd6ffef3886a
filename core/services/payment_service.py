"""Payment service: recording client payments against invoices."""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import InvalidStateError, NotFoundError
from core.models import InvoiceStatus, Payment, PaymentCreate, PaymentUpdate
from core.permissions import Action, require
from utils.request_context import RequestContext
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


_PAYMENT_IN_ORG = """
    SELECT pay.* FROM payments pay
    JOIN invoices i ON i.id = pay.invoice_id
    WHERE pay.id = %s AND i.organization_id = %s
"""


class PaymentService:
    """Service for payment operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def create(self, ctx: RequestContext, data: PaymentCreate) -> Payment:
        """
        Record a payment and mark its invoice PAID.

        Raises:
            NotFoundError: Invoice not in the caller's organization
            InvalidStateError: Invoice is CANCELLED
        """
        require(ctx, Action.PAYMENT_CREATE)

        with self.postgres.transaction() as tx:
            invoice = tx.execute_single(
                "SELECT id, invoice_no, status FROM invoices WHERE id = %s AND organization_id = %s FOR UPDATE",
                (data.invoice_id, ctx.organization_id)
            )
            if invoice is None:
                raise NotFoundError(f"Invoice {data.invoice_id} not found")
            if invoice["status"] == InvoiceStatus.CANCELLED.value:
                raise InvalidStateError(
                    f"Cannot record a payment for CANCELLED invoice {invoice['invoice_no']}"
                )

            now = now_utc()
            row = tx.execute_single(
                """
                INSERT INTO payments (
                    id, invoice_id, amount, method, reference,
                    notes, paid_at, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    uuid4(), data.invoice_id, data.amount, data.method, data.reference,
                    data.notes, now, now, now
                )
            )
            payment = Payment.model_validate(row)

            self.audit.log_change(
                tx, ctx,
                entity_type="payment",
                entity_id=payment.id,
                action=AuditAction.CREATE,
                changes={"created": payment.model_dump(mode="json")}
            )

            if invoice["status"] != InvoiceStatus.PAID.value:
                tx.execute(
                    "UPDATE invoices SET status = %s, updated_at = %s WHERE id = %s",
                    (InvoiceStatus.PAID.value, now, data.invoice_id)
                )
                self.audit.log_change(
                    tx, ctx,
                    entity_type="invoice",
                    entity_id=data.invoice_id,
                    action=AuditAction.UPDATE,
                    changes={"status": {"old": invoice["status"], "new": InvoiceStatus.PAID.value}}
                )

        logger.info("Payment %s of %s recorded for invoice %s", payment.id, payment.amount, invoice["invoice_no"])
        return payment

    def get_by_id(self, ctx: RequestContext, payment_id: UUID) -> Payment | None:
        """Get payment by ID within the caller's organization."""
        require(ctx, Action.PAYMENT_VIEW)
        row = self.postgres.execute_single(_PAYMENT_IN_ORG, (payment_id, ctx.organization_id))
        return Payment.model_validate(row) if row else None

    def list(self, ctx: RequestContext, invoice_id: UUID | None = None) -> list[Payment]:
        """Payments newest first, optionally for one invoice."""
        require(ctx, Action.PAYMENT_VIEW)

        query = """
            SELECT pay.* FROM payments pay
            JOIN invoices i ON i.id = pay.invoice_id
            WHERE i.organization_id = %s
        """
        params: list = [ctx.organization_id]
        if invoice_id is not None:
            query += " AND pay.invoice_id = %s"
            params.append(invoice_id)
        query += " ORDER BY pay.paid_at DESC"

        rows = self.postgres.execute(query, tuple(params))
        return [Payment.model_validate(row) for row in rows]

    def update(self, ctx: RequestContext, payment_id: UUID, data: PaymentUpdate) -> Payment:
        """
        Edit method, reference or notes. Amounts are never edited.

        Raises:
            NotFoundError: Payment not in the caller's organization
        """
        require(ctx, Action.PAYMENT_UPDATE)

        with self.postgres.transaction() as tx:
            row = tx.execute_single(_PAYMENT_IN_ORG, (payment_id, ctx.organization_id))
            if row is None:
                raise NotFoundError(f"Payment {payment_id} not found")
            current = Payment.model_validate(row)

            update_data = data.model_dump(exclude_unset=True)
            if not update_data:
                return current

            update_data["updated_at"] = now_utc()
            set_clause = ", ".join(f"{field} = %s" for field in update_data)

            row = tx.execute_single(
                f"UPDATE payments SET {set_clause} WHERE id = %s RETURNING *",
                tuple(update_data.values()) + (payment_id,)
            )
            payment = Payment.model_validate(row)

            changes = compute_changes(current.model_dump(mode="json"), payment.model_dump(mode="json"))
            if changes:
                self.audit.log_change(
                    tx, ctx,
                    entity_type="payment",
                    entity_id=payment_id,
                    action=AuditAction.UPDATE,
                    changes=changes
                )

        return payment
