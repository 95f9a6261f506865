from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from glovehub.domain import QuotationStatus, ShippingAddress, Urgency
from glovehub.errors import InvalidTransitionError, NotFoundError, ValidationError
from glovehub.services.quotations import TRANSITIONS, is_transition_allowed


def _line(seed, qty):
    return [{"product_id": seed.product_id, "quantity": qty}]


@pytest.mark.parametrize(
    "urgency,days",
    [(Urgency.VERY_URGENT, 1), (Urgency.URGENT, 3), (Urgency.NORMAL, 7)],
)
def test_validity_depends_on_urgency(pipeline, seed, fixed_now, urgency, days):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5), urgency)
    assert q.valid_until == fixed_now + timedelta(days=days)
    assert q.urgency == urgency.value


def test_create_prices_lines_and_totals(pipeline, seed):
    q = pipeline.quotations.create(
        seed.b2b_id,
        [
            {"product_id": seed.product_id, "quantity": 5},
            (seed.product_id, 250),
        ],
        shipping=ShippingAddress("Jl. Industri Raya No. 12", "Bekasi", "Jawa Barat"),
    )

    assert q.status == QuotationStatus.PENDING.value
    assert q.quotation_number.startswith("QUO-20250310-")
    assert [(i.quantity, i.unit_price) for i in q.items] == [(5, 50000), (250, 45000)]
    assert q.subtotal == sum(i.total_price for i in q.items) == 5 * 50000 + 250 * 45000
    assert q.tax_amount == 0
    assert q.total_amount == q.subtotal + q.tax_amount
    assert q.shipping_city == "Bekasi"


def test_create_writes_creation_log(pipeline, seed):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))
    log = pipeline.quotations.status_log(q.id)
    assert [(e.from_status, e.to_status) for e in log] == [(None, "PENDING")]


def test_create_reports_every_invalid_line(pipeline, seed):
    with pytest.raises(ValidationError) as ei:
        pipeline.quotations.create(
            seed.b2b_id,
            [
                {"product_id": "prod-a", "quantity": 0},
                {"product_id": "prod-b", "quantity": -3},
                {"product_id": "prod-c", "quantity": 2},
            ],
        )
    assert ei.value.code == "QUOTATION_INVALID"
    assert len(ei.value.errors) == 2
    assert "prod-a" in ei.value.errors[0]
    assert "prod-b" in ei.value.errors[1]


def test_create_rejects_empty_cart(pipeline, seed):
    with pytest.raises(ValidationError) as ei:
        pipeline.quotations.create(seed.b2b_id, [])
    assert ei.value.errors == ["Penawaran harus berisi minimal satu produk"]


def test_create_unknown_references(pipeline, seed):
    with pytest.raises(NotFoundError) as ei:
        pipeline.quotations.create("missing", _line(seed, 1))
    assert ei.value.code == "CUSTOMER_NOT_FOUND"

    with pytest.raises(NotFoundError) as ei:
        pipeline.quotations.create(seed.b2b_id, [{"product_id": "nope", "quantity": 1}])
    assert ei.value.code == "PRODUCT_NOT_FOUND"
    assert pipeline.quotations.list_for_customer(seed.b2b_id) == []


def test_same_millisecond_creates_get_distinct_numbers(pipeline, seed):
    # frozen clock: every create sees the same epoch millis
    with ThreadPoolExecutor(max_workers=4) as pool:
        created = list(pool.map(lambda _: pipeline.quotations.create(seed.b2b_id, _line(seed, 1)), range(4)))

    assert len({q.quotation_number for q in created}) == 4


def test_state_machine_is_closed():
    reachable = {s for targets in TRANSITIONS.values() for s in targets}
    assert reachable <= set(QuotationStatus)
    for current in QuotationStatus:
        for target in QuotationStatus:
            allowed = is_transition_allowed(current, target)
            expected = (current, target) in {
                (QuotationStatus.PENDING, QuotationStatus.APPROVED),
                (QuotationStatus.PENDING, QuotationStatus.REJECTED),
                (QuotationStatus.PENDING, QuotationStatus.EXPIRED),
                (QuotationStatus.APPROVED, QuotationStatus.CONVERTED),
            }
            assert allowed == expected, (current, target)


def test_approve_appends_log(pipeline, seed):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))
    q = pipeline.quotations.transition(q.id, QuotationStatus.APPROVED, "admin-1", "ok")

    assert q.status == "APPROVED"
    log = pipeline.quotations.status_log(q.id)
    assert (log[-1].from_status, log[-1].to_status, log[-1].actor) == ("PENDING", "APPROVED", "admin-1")


@pytest.mark.parametrize("target", ["CONVERTED", "EXPIRED", "PENDING"])
def test_admin_cannot_force_system_states(pipeline, seed, target):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))
    with pytest.raises(InvalidTransitionError):
        pipeline.quotations.transition(q.id, target, "admin-1")
    assert pipeline.quotations.get_by_id(q.id).status == "PENDING"


def test_terminal_states_reject_further_transitions(pipeline, seed):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))
    pipeline.quotations.transition(q.id, "REJECTED", "admin-1")

    with pytest.raises(InvalidTransitionError) as ei:
        pipeline.quotations.transition(q.id, "APPROVED", "admin-1")
    assert ei.value.from_status == "REJECTED"
    assert len(pipeline.quotations.status_log(q.id)) == 2


def test_unknown_status_is_a_validation_error(pipeline, seed):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))
    with pytest.raises(ValidationError) as ei:
        pipeline.quotations.transition(q.id, "SHIPPED", "admin-1")
    assert ei.value.code == "INVALID_STATUS"
    assert ei.value.errors == ["Status penawaran tidak valid: SHIPPED"]


def test_expiry_is_derived_at_read_time(pipeline, seed, clock):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5), Urgency.VERY_URGENT)
    clock.advance(days=1, seconds=1)

    stored = pipeline.quotations.get_by_id(q.id)
    assert stored.status == "PENDING"
    assert pipeline.quotations.effective_status(stored) is QuotationStatus.EXPIRED
    assert [x.id for x in pipeline.quotations.list_by_status("EXPIRED")] == [q.id]
    assert pipeline.quotations.list_by_status("PENDING") == []

    with pytest.raises(InvalidTransitionError) as ei:
        pipeline.quotations.transition(q.id, "APPROVED", "admin-1")
    assert ei.value.code == "QUOTATION_EXPIRED"


def test_quotation_valid_until_the_last_instant(pipeline, seed, clock):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5), Urgency.VERY_URGENT)
    clock.advance(days=1)
    assert pipeline.quotations.transition(q.id, "APPROVED", "admin-1").status == "APPROVED"


def test_expire_stale_persists_expired(pipeline, seed, clock):
    stale = pipeline.quotations.create(seed.b2b_id, _line(seed, 5), Urgency.VERY_URGENT)
    approved = pipeline.quotations.create(seed.b2b_id, _line(seed, 5), Urgency.VERY_URGENT)
    pipeline.quotations.transition(approved.id, "APPROVED", "admin-1")
    swept_at = clock.advance(days=2)
    fresh = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))

    assert pipeline.quotations.expire_stale() == 1
    assert pipeline.quotations.expire_stale() == 0

    assert pipeline.quotations.get_by_id(stale.id).status == "EXPIRED"
    assert pipeline.quotations.get_by_id(approved.id).status == "APPROVED"
    assert pipeline.quotations.get_by_id(fresh.id).status == "PENDING"
    log = pipeline.quotations.status_log(stale.id)
    assert (log[-1].to_status, log[-1].actor, log[-1].created_at) == ("EXPIRED", "system", swept_at)


def test_concurrent_decisions_exactly_one_wins(pipeline, seed):
    q = pipeline.quotations.create(seed.b2b_id, _line(seed, 5))

    def decide(target):
        try:
            pipeline.quotations.transition(q.id, target, f"admin-{target}")
            return target
        except InvalidTransitionError:
            return None

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(decide, ["APPROVED", "REJECTED"] * 3))

    winners = [r for r in results if r]
    assert len(winners) == 1
    final = pipeline.quotations.get_by_id(q.id)
    assert final.status == winners[0]
    assert [e.to_status for e in pipeline.quotations.status_log(q.id)] == ["PENDING", winners[0]]


def test_list_for_customer_is_scoped(pipeline, seed):
    pipeline.quotations.create(seed.b2b_id, _line(seed, 5))
    pipeline.quotations.create(seed.b2c_id, _line(seed, 5))

    assert {q.customer_id for q in pipeline.quotations.list_for_customer(seed.b2c_id)} == {seed.b2c_id}
