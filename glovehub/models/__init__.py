# Models package: importing it registers every table on Base.metadata

from .customer import Company, Customer
from .document_counter import DocumentCounter
from .invoice import Invoice, InvoiceItem, TaxInvoice
from .order import Order, OrderItem, OrderStatusLog
from .product import PricingTier, Product
from .quotation import Quotation, QuotationItem, QuotationStatusLog

__all__ = [
    "Company",
    "Customer",
    "DocumentCounter",
    "Invoice",
    "InvoiceItem",
    "Order",
    "OrderItem",
    "OrderStatusLog",
    "PricingTier",
    "Product",
    "Quotation",
    "QuotationItem",
    "QuotationStatusLog",
    "TaxInvoice",
]
