# glovehub/models/invoice.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from glovehub.db import Base
from glovehub.models.types import UTCDateTime, new_id, utcnow


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    invoice_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id"), unique=True, nullable=False
    )
    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.id"), index=True, nullable=False
    )

    # PENDING | PAID | OVERDUE | CANCELLED
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    subtotal: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tax_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    due_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    tax_invoice_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number} status={self.status}>"


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    invoice_id: Mapped[str] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")


class TaxInvoice(Base):
    """Faktur Pajak. Written once, never updated."""

    __tablename__ = "tax_invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    tax_invoice_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    invoice_id: Mapped[str] = mapped_column(
        ForeignKey("invoices.id"), unique=True, nullable=False
    )
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id"), index=True, nullable=False)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id"), nullable=False)

    ppn_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    ppn_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_with_ppn: Mapped[int] = mapped_column(BigInteger, nullable=False)

    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    issued_by: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<TaxInvoice number={self.tax_invoice_number} invoice_id={self.invoice_id} "
            f"ppn={self.ppn_amount}>"
        )
