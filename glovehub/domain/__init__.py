from .enums import (
    CustomerType,
    DocumentKind,
    InvoiceStatus,
    OrderStatus,
    QuotationStatus,
    Urgency,
)
from .models import CartLine, PricedLine, ProductSnapshot, ShippingAddress, TierSnapshot

__all__ = [
    "CartLine",
    "CustomerType",
    "DocumentKind",
    "InvoiceStatus",
    "OrderStatus",
    "PricedLine",
    "ProductSnapshot",
    "QuotationStatus",
    "ShippingAddress",
    "TierSnapshot",
    "Urgency",
]
