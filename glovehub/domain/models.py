from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class TierSnapshot:
    min_quantity: int
    max_quantity: Optional[int]  # None = open-ended
    price_per_unit: int
    is_active: bool = True


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    sku: str
    base_price: int
    pricing_tiers: Tuple[TierSnapshot, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PricedLine:
    """
    A cart line with its price locked in.
    Quotation and order items are written from this and never re-priced.
    """

    product_id: str
    sku: str
    quantity: int
    unit_price: int

    @property
    def total_price(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ShippingAddress:
    address: str
    city: str
    province: str
    postal_code: Optional[str] = None
