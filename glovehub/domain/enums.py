from __future__ import annotations

from enum import Enum


class QuotationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"


class OrderStatus(str, Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class CustomerType(str, Enum):
    B2B = "B2B"
    B2C = "B2C"


class Urgency(str, Enum):
    NORMAL = "NORMAL"
    URGENT = "URGENT"
    VERY_URGENT = "VERY_URGENT"


class DocumentKind(str, Enum):
    QUOTATION = "quotation"
    ORDER = "order"
    INVOICE = "invoice"
    TAX_INVOICE = "tax_invoice"
