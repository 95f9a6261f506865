# glovehub/routers/invoices.py
from typing import Optional

from fastapi import APIRouter, Depends

from glovehub.dependencies import get_actor, get_pipeline
from glovehub.errors import NotFoundError
from glovehub.routers.serializers import invoice_out, order_out, tax_invoice_out
from glovehub.schemas import InvoiceCreate, PaymentIn, TaxInvoiceRequest
from glovehub.services import Pipeline

router = APIRouter(tags=["invoices"])


@router.get("/orders/{order_id}")
def get_order(order_id: str, pipeline: Pipeline = Depends(get_pipeline)):
    return order_out(pipeline.orders.get_by_id(order_id))


@router.post("/orders/{order_id}/invoice", status_code=201)
def create_invoice(
    order_id: str,
    payload: Optional[InvoiceCreate] = None,
    pipeline: Pipeline = Depends(get_pipeline),
):
    due_date = payload.due_date if payload else None
    return invoice_out(pipeline.invoices.create_for_order(order_id, due_date))


@router.post("/invoices/{invoice_id}/payment")
def record_payment(
    invoice_id: str,
    payload: Optional[PaymentIn] = None,
    pipeline: Pipeline = Depends(get_pipeline),
):
    paid_at = payload.paid_at if payload else None
    return invoice_out(pipeline.invoices.mark_paid(invoice_id, paid_at))


@router.post("/invoices/{invoice_id}/tax-invoice", status_code=201)
def issue_tax_invoice(
    invoice_id: str,
    payload: TaxInvoiceRequest,
    actor: str = Depends(get_actor),
    pipeline: Pipeline = Depends(get_pipeline),
):
    t = pipeline.tax_invoices.issue_tax_invoice(
        invoice_id, payload.customer_id, payload.company_id, actor
    )
    return tax_invoice_out(t)


@router.get("/invoices/{invoice_id}/tax-invoice")
def get_tax_invoice_for_invoice(invoice_id: str, pipeline: Pipeline = Depends(get_pipeline)):
    t = pipeline.tax_invoices.get_by_invoice_id(invoice_id)
    if t is None:
        raise NotFoundError("TAX_INVOICE_NOT_FOUND", meta={"invoice_id": invoice_id})
    return tax_invoice_out(t)


@router.get("/tax-invoices")
def list_tax_invoices(page: int = 1, limit: int = 10, pipeline: Pipeline = Depends(get_pipeline)):
    result = pipeline.tax_invoices.list_tax_invoices(page, limit)
    return {
        "tax_invoices": [tax_invoice_out(t) for t in result.items],
        "total": result.total,
        "pages": result.pages,
        "current_page": result.current_page,
    }


@router.get("/tax-invoices/{tax_invoice_id}")
def get_tax_invoice(tax_invoice_id: str, pipeline: Pipeline = Depends(get_pipeline)):
    return tax_invoice_out(pipeline.tax_invoices.get_by_id(tax_invoice_id))
