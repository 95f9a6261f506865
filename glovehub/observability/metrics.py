# glovehub/observability/metrics.py
from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from starlette.responses import Response

router = APIRouter(tags=["observability"])

documents_numbered = Counter(
    "glovehub_documents_numbered_total",
    "Document numbers handed out",
    ["kind"],  # quotation|order|invoice|tax_invoice
)

numbering_retries = Counter(
    "glovehub_numbering_retries_total",
    "Document number collisions that were retried",
    ["kind"],
)

quotation_transitions = Counter(
    "glovehub_quotation_transitions_total",
    "Quotation status transition attempts",
    ["to_status", "result"],  # result: success|rejected
)

orders_converted = Counter(
    "glovehub_orders_converted_total",
    "Quotations converted into orders",
    ["result"],  # success|rejected
)

tax_invoices_issued = Counter(
    "glovehub_tax_invoices_issued_total",
    "Tax invoice issuance attempts",
    ["result"],  # success|invalid|conflict
)


@router.get("/metrics", include_in_schema=True)
def metrics() -> Response:
    # Prometheus expects text/plain; version=0.0.4
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
