# glovehub/routers/quotations.py
from typing import Optional

from fastapi import APIRouter, Depends

from glovehub.dependencies import get_actor, get_pipeline
from glovehub.domain.enums import QuotationStatus
from glovehub.domain.models import CartLine, ShippingAddress
from glovehub.routers.serializers import order_out, quotation_out
from glovehub.schemas import QuotationCreate, QuotationStatusUpdate
from glovehub.services import Pipeline

router = APIRouter(prefix="/quotations", tags=["quotations"])


@router.post("", status_code=201)
def create_quotation(payload: QuotationCreate, pipeline: Pipeline = Depends(get_pipeline)):
    shipping = ShippingAddress(**payload.shipping.model_dump()) if payload.shipping else None
    q = pipeline.quotations.create(
        payload.customer_id,
        [CartLine(product_id=i.product_id, quantity=i.quantity) for i in payload.items],
        payload.urgency,
        notes=payload.notes,
        shipping=shipping,
    )
    return quotation_out(q, pipeline.quotations.effective_status(q))


@router.get("")
def list_quotations(
    status: Optional[QuotationStatus] = None,
    customer_id: Optional[str] = None,
    pipeline: Pipeline = Depends(get_pipeline),
):
    if status is not None:
        rows = pipeline.quotations.list_by_status(status)
    elif customer_id:
        rows = pipeline.quotations.list_for_customer(customer_id)
    else:
        rows = pipeline.quotations.list_by_status(QuotationStatus.PENDING)
    return [quotation_out(q, pipeline.quotations.effective_status(q)) for q in rows]


@router.get("/{quotation_id}")
def get_quotation(quotation_id: str, pipeline: Pipeline = Depends(get_pipeline)):
    q = pipeline.quotations.get_by_id(quotation_id)
    out = quotation_out(q, pipeline.quotations.effective_status(q))
    out["status_log"] = [
        {
            "from_status": e.from_status,
            "to_status": e.to_status,
            "actor": e.actor,
            "notes": e.notes,
            "created_at": e.created_at.isoformat(),
        }
        for e in q.status_logs
    ]
    return out


@router.patch("/{quotation_id}/status")
def update_status(
    quotation_id: str,
    payload: QuotationStatusUpdate,
    actor: str = Depends(get_actor),
    pipeline: Pipeline = Depends(get_pipeline),
):
    q = pipeline.quotations.transition(quotation_id, payload.status, actor, payload.notes)
    return quotation_out(q, pipeline.quotations.effective_status(q))


@router.post("/{quotation_id}/convert", status_code=201)
def convert_quotation(
    quotation_id: str,
    actor: str = Depends(get_actor),
    pipeline: Pipeline = Depends(get_pipeline),
):
    order = pipeline.orders.convert(quotation_id, actor)
    return order_out(order)
