"""Invoice endpoints under /api/invoices."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.base import success_response
from api.dependencies import get_request_context
from core.exceptions import NotFoundError
from core.models import InvoiceCreate, InvoiceFilter, InvoiceStatus, InvoiceUpdate
from utils.request_context import RequestContext


def create_invoice_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/invoices", tags=["invoices"])

    invoice_svc = services["invoice"]

    @router.post("", status_code=201)
    async def create_invoice(body: InvoiceCreate, ctx: RequestContext = Depends(get_request_context)):
        invoice = invoice_svc.create(ctx, body)
        return success_response(
            invoice.model_dump(mode="json"), "Invoice created successfully"
        ).model_dump(mode="json")

    @router.get("")
    async def list_invoices(
        ctx: RequestContext = Depends(get_request_context),
        client_id: UUID | None = Query(None),
        project_id: UUID | None = Query(None),
        status: InvoiceStatus | None = Query(None),
        start_date: datetime | None = Query(None),
        end_date: datetime | None = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
    ):
        filters = InvoiceFilter(
            client_id=client_id,
            project_id=project_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
        result = invoice_svc.list(ctx, filters)
        return success_response(
            result.model_dump(mode="json"), "Invoices retrieved successfully"
        ).model_dump(mode="json")

    @router.get("/{invoice_id}")
    async def get_invoice(invoice_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        invoice = invoice_svc.get_by_id(ctx, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return success_response(invoice.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/{invoice_id}/history")
    async def get_invoice_history(invoice_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        entries = invoice_svc.history(ctx, invoice_id)
        return success_response(
            [entry.model_dump(mode="json") for entry in entries]
        ).model_dump(mode="json")

    @router.put("/{invoice_id}")
    async def update_invoice(
        invoice_id: UUID, body: InvoiceUpdate, ctx: RequestContext = Depends(get_request_context)
    ):
        invoice = invoice_svc.update(ctx, invoice_id, body)
        return success_response(
            invoice.model_dump(mode="json"), "Invoice updated successfully"
        ).model_dump(mode="json")

    @router.post("/{invoice_id}/send")
    async def send_invoice(invoice_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        invoice = invoice_svc.send(ctx, invoice_id)
        return success_response(
            invoice.model_dump(mode="json"), f"Invoice {invoice.invoice_no} sent"
        ).model_dump(mode="json")

    @router.patch("/{invoice_id}/mark-paid")
    async def mark_invoice_paid(invoice_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        invoice = invoice_svc.mark_paid(ctx, invoice_id)
        return success_response(
            invoice.model_dump(mode="json"), f"Invoice {invoice.invoice_no} marked as paid"
        ).model_dump(mode="json")

    @router.post("/{invoice_id}/cancel")
    async def cancel_invoice(invoice_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        invoice = invoice_svc.cancel(ctx, invoice_id)
        return success_response(
            invoice.model_dump(mode="json"), f"Invoice {invoice.invoice_no} cancelled"
        ).model_dump(mode="json")

    @router.delete("/{invoice_id}")
    async def delete_invoice(invoice_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        invoice = invoice_svc.delete(ctx, invoice_id)
        return success_response(
            {"id": str(invoice.id), "invoice_no": invoice.invoice_no},
            f"Invoice {invoice.invoice_no} deleted successfully",
        ).model_dump(mode="json")

    return router
