# glovehub/schemas/pipeline.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from glovehub.domain.enums import QuotationStatus, Urgency


class QuotationLineIn(BaseModel):
    product_id: str
    # validated by QuotationLifecycle so every bad line is reported together
    quantity: int


class ShippingIn(BaseModel):
    address: str
    city: str
    province: str
    postal_code: Optional[str] = None


class QuotationCreate(BaseModel):
    customer_id: str
    items: List[QuotationLineIn]
    urgency: Urgency = Urgency.NORMAL
    notes: Optional[str] = None
    shipping: Optional[ShippingIn] = None


class QuotationStatusUpdate(BaseModel):
    status: QuotationStatus
    notes: Optional[str] = None


class InvoiceCreate(BaseModel):
    due_date: Optional[datetime] = None


class PaymentIn(BaseModel):
    paid_at: Optional[datetime] = None


class TaxInvoiceRequest(BaseModel):
    customer_id: str
    company_id: str
