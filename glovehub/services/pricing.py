from __future__ import annotations

from typing import Any, Iterable, List, Optional

from glovehub.domain.models import PricedLine, ProductSnapshot, TierSnapshot


def _tier_matches(tier: Any, quantity: int) -> bool:
    if not getattr(tier, "is_active", True):
        return False
    if quantity < tier.min_quantity:
        return False
    if tier.max_quantity is not None and quantity > tier.max_quantity:
        return False
    return True


def select_tier(tiers: Iterable[Any], quantity: int) -> Optional[Any]:
    """
    Most specific active tier bounding quantity: the one with the highest
    min_quantity. Overlapping tiers are not re-validated here.
    """
    best = None
    for t in tiers or ():
        if not _tier_matches(t, quantity):
            continue
        if best is None or t.min_quantity > best.min_quantity:
            best = t
    return best


class PriceResolver:
    """
    Quantity tier pricing. Stateless and side-effect free.

    Works on ORM products and ProductSnapshot values alike: anything with
    `base_price` and `pricing_tiers`.
    """

    def resolve_price(self, product: Any, quantity: int) -> int:
        tier = select_tier(getattr(product, "pricing_tiers", None), quantity)
        if tier is None:
            return int(product.base_price)
        return int(tier.price_per_unit)

    def line_total(self, product: Any, quantity: int) -> int:
        return self.resolve_price(product, quantity) * quantity

    def price_line(self, product: Any, quantity: int) -> PricedLine:
        return PricedLine(
            product_id=str(product.id),
            sku=str(product.sku),
            quantity=quantity,
            unit_price=self.resolve_price(product, quantity),
        )

    def price_lines(self, pairs: Iterable[tuple[Any, int]]) -> List[PricedLine]:
        return [self.price_line(product, qty) for product, qty in pairs]


def snapshot_product(product: Any) -> ProductSnapshot:
    """Freeze an ORM product (and its tiers) into a value object."""
    return ProductSnapshot(
        id=str(product.id),
        sku=str(product.sku),
        base_price=int(product.base_price),
        pricing_tiers=tuple(
            TierSnapshot(
                min_quantity=t.min_quantity,
                max_quantity=t.max_quantity,
                price_per_unit=int(t.price_per_unit),
                is_active=bool(t.is_active),
            )
            for t in product.pricing_tiers
        ),
    )


price_resolver = PriceResolver()
