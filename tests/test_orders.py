from concurrent.futures import ThreadPoolExecutor

import pytest

from glovehub.errors import ConversionError, InvalidTransitionError, NotFoundError
from glovehub.models import PricingTier, Product
from glovehub.services.orders import OrderConverter


def test_convert_copies_items_and_locks_quotation(pipeline, approved_quotation):
    q = approved_quotation(quantity=250)

    order = pipeline.orders.convert(q.id, "admin-1")

    assert order.order_number == "ORD-2025-000001"
    assert order.status == "NEW"
    assert order.quotation_id == q.id
    assert [(i.sku, i.quantity, i.unit_price, i.total_price) for i in order.items] == [
        ("NIT-100", 250, 45000, 250 * 45000)
    ]
    assert order.total_amount == q.total_amount
    assert [(e.from_status, e.to_status) for e in order.status_logs] == [(None, "NEW")]

    stored = pipeline.quotations.get_by_id(q.id)
    assert stored.status == "CONVERTED"
    assert stored.converted_order_id == order.id
    assert [e.to_status for e in pipeline.quotations.status_log(q.id)] == ["PENDING", "APPROVED", "CONVERTED"]


def test_second_conversion_is_rejected(pipeline, approved_quotation):
    q = approved_quotation()
    first = pipeline.orders.convert(q.id, "admin-1")

    with pytest.raises(ConversionError) as ei:
        pipeline.orders.convert(q.id, "admin-2")

    assert isinstance(ei.value, InvalidTransitionError)
    assert ei.value.code == "QUOTATION_ALREADY_CONVERTED"
    assert pipeline.orders.get_by_quotation_id(q.id).id == first.id


def test_only_approved_quotations_convert(pipeline, seed):
    q = pipeline.quotations.create(seed.b2b_id, [{"product_id": seed.product_id, "quantity": 5}])

    with pytest.raises(ConversionError) as ei:
        pipeline.orders.convert(q.id, "admin-1")
    assert ei.value.code == "QUOTATION_NOT_APPROVED"
    assert pipeline.orders.get_by_quotation_id(q.id) is None
    assert pipeline.quotations.get_by_id(q.id).status == "PENDING"


def test_rejected_conversion_does_not_consume_an_order_number(pipeline, seed, approved_quotation):
    pending = pipeline.quotations.create(seed.b2b_id, [{"product_id": seed.product_id, "quantity": 5}])
    with pytest.raises(ConversionError):
        pipeline.orders.convert(pending.id, "admin-1")

    order = pipeline.orders.convert(approved_quotation().id, "admin-1")
    assert order.order_number == "ORD-2025-000001"


def test_unknown_quotation(pipeline):
    with pytest.raises(NotFoundError):
        pipeline.orders.convert("missing", "admin-1")


def test_concurrent_conversions_create_one_order(pipeline, approved_quotation):
    q = approved_quotation()

    def convert(i):
        try:
            return pipeline.orders.convert(q.id, f"admin-{i}")
        except ConversionError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(convert, range(8)))

    orders = [o for o in results if o is not None]
    assert len(orders) == 1
    assert pipeline.quotations.get_by_id(q.id).converted_order_id == orders[0].id
    assert [e.to_status for e in pipeline.quotations.status_log(q.id)].count("CONVERTED") == 1


def test_order_keeps_quoted_price_after_tier_change(pipeline, session_factory, seed, approved_quotation):
    q = approved_quotation(quantity=250)

    with session_factory.begin() as db:
        product = db.get(Product, seed.product_id)
        for tier in product.pricing_tiers:
            tier.is_active = False
        product.pricing_tiers.append(PricingTier(min_quantity=100, max_quantity=None, price_per_unit=30000))

    order = pipeline.orders.convert(q.id, "admin-1")
    assert order.items[0].unit_price == 45000
    assert order.subtotal == q.subtotal


def test_taken_order_number_is_retried_with_a_fresh_one(
    pipeline, session_factory, approved_quotation, replay_numberer, clock
):
    first = pipeline.orders.convert(approved_quotation().id, "admin-1")
    q = approved_quotation()

    converter = OrderConverter(session_factory, replay_numberer(first.order_number), clock=clock)
    order = converter.convert(q.id, "admin-1")

    assert order.order_number == "ORD-2025-000002"
    assert pipeline.quotations.get_by_id(q.id).converted_order_id == order.id
    assert pipeline.quotations.get_by_id(q.id).status == "CONVERTED"
