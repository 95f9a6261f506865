# glovehub/models/product.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from glovehub.db import Base
from glovehub.models.types import UTCDateTime, new_id, utcnow


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # smallest currency unit
    base_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    pricing_tiers: Mapped[List["PricingTier"]] = relationship(
        "PricingTier",
        back_populates="product",
        order_by="PricingTier.min_quantity",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} base_price={self.base_price}>"


class PricingTier(Base):
    __tablename__ = "pricing_tiers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False
    )

    min_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # None = open-ended
    price_per_unit: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # soft delete: inactive tiers stay for audit
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    product: Mapped["Product"] = relationship("Product", back_populates="pricing_tiers")

    def __repr__(self) -> str:
        return (
            f"<PricingTier product_id={self.product_id} "
            f"[{self.min_quantity}, {self.max_quantity}] price={self.price_per_unit}>"
        )
