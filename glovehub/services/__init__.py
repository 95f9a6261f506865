from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from glovehub.models.types import utcnow
from glovehub.services.invoices import InvoiceIssuer
from glovehub.services.numbering import DocumentNumberer
from glovehub.services.orders import OrderConverter
from glovehub.services.pricing import PriceResolver, price_resolver
from glovehub.services.quotations import QuotationLifecycle
from glovehub.services.tax_invoices import InvoiceTaxEngine


@dataclass
class Pipeline:
    numberer: DocumentNumberer
    quotations: QuotationLifecycle
    orders: OrderConverter
    invoices: InvoiceIssuer
    tax_invoices: InvoiceTaxEngine
    pricing: PriceResolver = price_resolver


def build_services(
    session_factory: sessionmaker[Session],
    clock: Optional[Callable[[], datetime]] = None,
) -> Pipeline:
    """Wire every service against one session factory and one shared numberer."""
    clock = clock or utcnow
    numberer = DocumentNumberer(session_factory, clock=clock)
    return Pipeline(
        numberer=numberer,
        quotations=QuotationLifecycle(session_factory, numberer, clock=clock),
        orders=OrderConverter(session_factory, numberer, clock=clock),
        invoices=InvoiceIssuer(session_factory, numberer, clock=clock),
        tax_invoices=InvoiceTaxEngine(session_factory, numberer, clock=clock),
    )


__all__ = [
    "DocumentNumberer",
    "InvoiceIssuer",
    "InvoiceTaxEngine",
    "OrderConverter",
    "Pipeline",
    "PriceResolver",
    "QuotationLifecycle",
    "build_services",
    "price_resolver",
]
