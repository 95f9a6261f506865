from .pipeline import (
    InvoiceCreate,
    PaymentIn,
    QuotationCreate,
    QuotationLineIn,
    QuotationStatusUpdate,
    ShippingIn,
    TaxInvoiceRequest,
)

__all__ = [
    "InvoiceCreate",
    "PaymentIn",
    "QuotationCreate",
    "QuotationLineIn",
    "QuotationStatusUpdate",
    "ShippingIn",
    "TaxInvoiceRequest",
]
