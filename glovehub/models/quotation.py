# glovehub/models/quotation.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from glovehub.db import Base
from glovehub.models.types import UTCDateTime, new_id, utcnow


class Quotation(Base):
    __tablename__ = "quotations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    quotation_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.id"), index=True, nullable=False
    )

    # PENDING | APPROVED | REJECTED | EXPIRED | CONVERTED
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True, default="PENDING")
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="NORMAL")

    subtotal: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tax_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    valid_until: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    converted_order_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # shipping snapshot (copied, not referenced)
    shipping_address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    shipping_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    shipping_province: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    shipping_postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    items: Mapped[List["QuotationItem"]] = relationship(
        "QuotationItem",
        back_populates="quotation",
        order_by="QuotationItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    status_logs: Mapped[List["QuotationStatusLog"]] = relationship(
        "QuotationStatusLog",
        back_populates="quotation",
        order_by="QuotationStatusLog.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<Quotation id={self.id} number={self.quotation_number} "
            f"status={self.status} total={self.total_amount}>"
        )


class QuotationItem(Base):
    __tablename__ = "quotation_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    quotation_id: Mapped[str] = mapped_column(
        ForeignKey("quotations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="items")

    def __repr__(self) -> str:
        return f"<QuotationItem sku={self.sku!r} qty={self.quantity} unit={self.unit_price}>"


class QuotationStatusLog(Base):
    """Append-only history of quotation status changes."""

    __tablename__ = "quotation_status_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quotation_id: Mapped[str] = mapped_column(
        ForeignKey("quotations.id", ondelete="CASCADE"), index=True, nullable=False
    )

    from_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="status_logs")

    def __repr__(self) -> str:
        return f"<QuotationStatusLog {self.from_status} -> {self.to_status} by={self.actor}>"
