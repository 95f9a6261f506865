# glovehub/routers/serializers.py
from typing import Any, Dict, Iterable, Optional

from glovehub.domain.enums import QuotationStatus
from glovehub.localization import status_label
from glovehub.services.tax import format_idr


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _items(items: Iterable[Any]) -> list:
    return [
        {
            "product_id": i.product_id,
            "sku": i.sku,
            "quantity": i.quantity,
            "unit_price": i.unit_price,
            "total_price": i.total_price,
        }
        for i in items
    ]


def quotation_out(q, status: QuotationStatus) -> Dict[str, Any]:
    return {
        "id": q.id,
        "quotation_number": q.quotation_number,
        "customer_id": q.customer_id,
        "status": status.value,
        "status_label": status_label("quotation", status.value),
        "urgency": q.urgency,
        "subtotal": q.subtotal,
        "tax_amount": q.tax_amount,
        "total_amount": q.total_amount,
        "valid_until": _iso(q.valid_until),
        "converted_order_id": q.converted_order_id,
        "notes": q.notes,
        "items": _items(q.items),
        "created_at": _iso(q.created_at),
    }


def order_out(o) -> Dict[str, Any]:
    return {
        "id": o.id,
        "order_number": o.order_number,
        "customer_id": o.customer_id,
        "quotation_id": o.quotation_id,
        "status": o.status,
        "status_label": status_label("order", o.status),
        "subtotal": o.subtotal,
        "tax_amount": o.tax_amount,
        "total_amount": o.total_amount,
        "items": _items(o.items),
        "created_at": _iso(o.created_at),
    }


def invoice_out(inv) -> Dict[str, Any]:
    return {
        "id": inv.id,
        "invoice_number": inv.invoice_number,
        "order_id": inv.order_id,
        "customer_id": inv.customer_id,
        "status": inv.status,
        "status_label": status_label("invoice", inv.status),
        "subtotal": inv.subtotal,
        "tax_amount": inv.tax_amount,
        "total_amount": inv.total_amount,
        "due_date": _iso(inv.due_date),
        "paid_at": _iso(inv.paid_at),
        "tax_invoice_requested": inv.tax_invoice_requested,
    }


def tax_invoice_out(t) -> Dict[str, Any]:
    subtotal = t.invoice.subtotal if t.invoice is not None else t.total_with_ppn - t.ppn_amount
    return {
        "id": t.id,
        "tax_invoice_number": t.tax_invoice_number,
        "invoice_id": t.invoice_id,
        "invoice_number": t.invoice.invoice_number if t.invoice is not None else None,
        "customer_id": t.customer_id,
        "company_id": t.company_id,
        "subtotal": subtotal,
        "ppn_rate": str(t.ppn_rate),
        "ppn_amount": t.ppn_amount,
        "total_with_ppn": t.total_with_ppn,
        "total_with_ppn_display": format_idr(t.total_with_ppn),
        "issued_at": _iso(t.issued_at),
        "issued_by": t.issued_by,
    }
