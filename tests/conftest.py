from __future__ import annotations

import os

# keep the module-level engine away from the working directory during tests
os.environ.setdefault("GLOVEHUB_DATABASE_URL", "sqlite:///./.pytest-glovehub.db")
os.environ.setdefault("GLOVEHUB_LOG_JSON", "false")

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from glovehub import models  # noqa: F401 (register all tables)
from glovehub.db import Base, make_engine, make_session_factory
from glovehub.models import Company, Customer, PricingTier, Product
from glovehub.services import build_services
from glovehub.services.numbering import DocumentNumberer


@dataclass
class FrozenClock:
    now: datetime

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ReplayNumberer(DocumentNumberer):
    """Hands out queued numbers first, as if another writer had already used them."""

    def __init__(self, session_factory, queued, **kwargs):
        super().__init__(session_factory, **kwargs)
        self.queued = list(queued)

    def next(self, kind, now=None, attempt=0):
        if self.queued:
            return self.queued.pop(0)
        return super().next(kind, now, attempt)


@pytest.fixture
def fixed_now():
    # 12:00 in Jakarta
    return datetime(2025, 3, 10, 5, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    return FrozenClock(fixed_now)


@pytest.fixture
def engine(tmp_path):
    # file-backed so concurrent sessions see each other's commits
    eng = make_engine(f"sqlite:///{tmp_path / 'pipeline.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def pipeline(session_factory, clock):
    return build_services(session_factory, clock)


@pytest.fixture
def seed(session_factory):
    """Two customers (B2B with a complete company, B2C) and one tiered product."""
    with session_factory.begin() as db:
        company = Company(
            name="PT Sarung Tangan Jaya",
            tax_id="01.234.567.8-901.000",
            registration_number="NIB-8120001234567",
            address="Jl. Industri Raya No. 12",
            city="Bekasi",
            province="Jawa Barat",
            postal_code="17530",
        )
        db.add(company)
        db.flush()

        b2b = Customer(
            name="Budi Santoso",
            email="budi@stjaya.co.id",
            type="B2B",
            company_id=company.id,
        )
        b2c = Customer(name="Siti Rahma", email="siti@example.com", type="B2C")

        product = Product(sku="NIT-100", name="Nitrile Gloves Box 100", base_price=50000, stock=1000)
        product.pricing_tiers = [
            PricingTier(min_quantity=100, max_quantity=499, price_per_unit=45000),
            PricingTier(min_quantity=500, max_quantity=None, price_per_unit=40000),
        ]
        db.add_all([b2b, b2c, product])
        db.flush()

        return SimpleNamespace(
            company_id=company.id,
            b2b_id=b2b.id,
            b2c_id=b2c.id,
            product_id=product.id,
        )


@pytest.fixture
def approved_quotation(pipeline, seed, clock):
    def _make(customer_id=None, quantity=10):
        # distinct epoch millis per quotation number
        clock.advance(seconds=1)
        q = pipeline.quotations.create(
            customer_id or seed.b2b_id,
            [{"product_id": seed.product_id, "quantity": quantity}],
        )
        return pipeline.quotations.transition(q.id, "APPROVED", "admin-1")

    return _make


@pytest.fixture
def paid_invoice(pipeline, approved_quotation):
    """Quotation -> order -> invoice, marked PAID."""

    def _make(customer_id=None, quantity=10):
        q = approved_quotation(customer_id, quantity)
        order = pipeline.orders.convert(q.id, "admin-1")
        invoice = pipeline.invoices.create_for_order(order.id)
        return pipeline.invoices.mark_paid(invoice.id)

    return _make


@pytest.fixture
def replay_numberer(session_factory, clock):
    def _make(*queued):
        return ReplayNumberer(session_factory, queued, clock=clock)

    return _make
