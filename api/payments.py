"""Payment endpoints under /api/payments."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.base import success_response
from api.dependencies import get_request_context
from core.exceptions import NotFoundError
from core.models import PaymentCreate, PaymentUpdate
from utils.request_context import RequestContext


def create_payment_router(services: dict) -> APIRouter:
    router = APIRouter(prefix="/payments", tags=["payments"])

    payment_svc = services["payment"]

    @router.post("", status_code=201)
    async def create_payment(body: PaymentCreate, ctx: RequestContext = Depends(get_request_context)):
        payment = payment_svc.create(ctx, body)
        return success_response(
            payment.model_dump(mode="json"), "Payment recorded successfully"
        ).model_dump(mode="json")

    @router.get("")
    async def list_payments(
        ctx: RequestContext = Depends(get_request_context),
        invoice_id: UUID | None = Query(None),
    ):
        payments = payment_svc.list(ctx, invoice_id)
        return success_response(
            [p.model_dump(mode="json") for p in payments]
        ).model_dump(mode="json")

    @router.get("/{payment_id}")
    async def get_payment(payment_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        payment = payment_svc.get_by_id(ctx, payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return success_response(payment.model_dump(mode="json")).model_dump(mode="json")

    @router.put("/{payment_id}")
    async def update_payment(
        payment_id: UUID, body: PaymentUpdate, ctx: RequestContext = Depends(get_request_context)
    ):
        payment = payment_svc.update(ctx, payment_id, body)
        return success_response(
            payment.model_dump(mode="json"), "Payment updated successfully"
        ).model_dump(mode="json")

    return router
