from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from glovehub.errors import ConflictError, NotFoundError, ValidationError
from glovehub.models import Company, Customer, Invoice
from glovehub.services.numbering import TAX_INVOICE_RE, parse_sequence
from glovehub.services.tax import calc_ppn, format_idr
from glovehub.services.tax_invoices import NPWP_RE, InvoiceTaxEngine, validate_tax_information


def test_ppn_on_round_amount():
    b = calc_ppn(100000, Decimal("0.11"))
    assert (b.ppn_amount, b.total_with_ppn) == (11000, 111000)


def test_ppn_rounds_half_up():
    # 50 * 0.11 = 5.5 -> 6
    assert calc_ppn(50, Decimal("0.11")).ppn_amount == 6
    # 45 * 0.11 = 4.95 -> 5
    assert calc_ppn(45, Decimal("0.11")).ppn_amount == 5


def test_format_idr():
    assert format_idr(1234567) == "Rp 1.234.567"
    assert format_idr(0) == "Rp 0"


@pytest.mark.parametrize(
    "npwp,ok",
    [
        ("01.234.567.8-901.000", True),
        ("invalid-npwp", False),
        ("", False),
        ("01-234-567-8-901-000", False),
        ("01.234.567.8-901.0000", False),
    ],
)
def test_npwp_format(npwp, ok):
    assert bool(NPWP_RE.match(npwp)) is ok


def test_validation_lists_every_problem():
    customer = Customer(name="x", email="x@example.com", type="B2B")
    company = Company(name="PT Kosong", tax_id="01-234-567-8-901-000", city="Bekasi")

    check = validate_tax_information(customer, company)

    assert not check.is_valid
    assert check.errors == (
        "Format NPWP tidak valid (contoh: 01.234.567.8-901.000)",
        "Nomor registrasi perusahaan diperlukan",
        "Alamat lengkap perusahaan diperlukan",
    )


def test_validation_without_company():
    check = validate_tax_information(Customer(name="x", email="x@example.com", type="B2B"), None)
    assert check.errors == ("Data perusahaan diperlukan untuk faktur pajak",)


def test_issue_for_paid_b2b_invoice(pipeline, seed, paid_invoice, fixed_now):
    invoice = paid_invoice(quantity=2)  # 2 x 50.000

    t = pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, "admin-1")

    assert t.tax_invoice_number == "010.000-25.00000001"
    assert TAX_INVOICE_RE.match(t.tax_invoice_number)
    assert t.ppn_rate == Decimal("0.11")
    assert (t.ppn_amount, t.total_with_ppn) == (11000, 111000)
    assert t.issued_by == "admin-1"
    assert pipeline.invoices.get_by_id(invoice.id).tax_invoice_requested is True
    assert pipeline.tax_invoices.get_by_invoice_id(invoice.id).id == t.id


def test_second_issue_is_a_conflict(pipeline, seed, paid_invoice):
    invoice = paid_invoice()
    pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, "admin-1")

    with pytest.raises(ConflictError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, "admin-2")
    assert ei.value.code == "TAX_INVOICE_EXISTS"
    assert not ei.value.retryable


def test_unpaid_invoice_is_rejected(pipeline, seed, approved_quotation):
    order = pipeline.orders.convert(approved_quotation().id, "admin-1")
    invoice = pipeline.invoices.create_for_order(order.id)

    with pytest.raises(ValidationError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, "admin-1")
    assert ei.value.code == "INVOICE_NOT_PAID"
    assert pipeline.tax_invoices.get_by_invoice_id(invoice.id) is None


def test_b2c_customer_is_rejected(pipeline, seed, paid_invoice):
    invoice = paid_invoice(customer_id=seed.b2c_id)

    with pytest.raises(ValidationError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2c_id, seed.company_id, "admin-1")
    assert ei.value.code == "TAX_INVOICE_B2B_ONLY"


def test_incomplete_company_lists_all_errors_and_changes_nothing(
    pipeline, session_factory, seed, paid_invoice
):
    invoice = paid_invoice()
    with session_factory.begin() as db:
        company = db.get(Company, seed.company_id)
        company.tax_id = "invalid-npwp"
        company.registration_number = None

    with pytest.raises(ValidationError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, "admin-1")

    assert ei.value.code == "TAX_INFO_INVALID"
    assert len(ei.value.errors) == 2
    assert pipeline.tax_invoices.get_by_invoice_id(invoice.id) is None
    with session_factory() as db:
        assert db.get(Invoice, invoice.id).tax_invoice_requested is False


def test_unknown_references(pipeline, seed, paid_invoice):
    invoice = paid_invoice()
    with pytest.raises(NotFoundError) as ei:
        pipeline.tax_invoices.issue_tax_invoice("missing", seed.b2b_id, seed.company_id, "a")
    assert ei.value.code == "INVOICE_NOT_FOUND"
    with pytest.raises(NotFoundError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, "missing", "a")
    assert ei.value.code == "COMPANY_NOT_FOUND"


def test_rejections_do_not_consume_numbers(pipeline, seed, paid_invoice):
    b2c_invoice = paid_invoice(customer_id=seed.b2c_id)
    with pytest.raises(ValidationError):
        pipeline.tax_invoices.issue_tax_invoice(b2c_invoice.id, seed.b2c_id, seed.company_id, "a")

    t = pipeline.tax_invoices.issue_tax_invoice(paid_invoice().id, seed.b2b_id, seed.company_id, "a")
    assert parse_sequence("tax_invoice", t.tax_invoice_number) == 1


def test_concurrent_issue_for_one_invoice(pipeline, seed, paid_invoice):
    invoice = paid_invoice()

    def issue(i):
        try:
            return pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, f"a{i}")
        except ConflictError:
            return None

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = [r for r in pool.map(issue, range(6)) if r is not None]

    assert len(results) == 1
    assert pipeline.tax_invoices.list_tax_invoices().total == 1


def test_concurrent_issue_gives_unique_numbers(pipeline, seed, paid_invoice):
    invoices = [paid_invoice() for _ in range(6)]

    with ThreadPoolExecutor(max_workers=6) as pool:
        issued = list(
            pool.map(
                lambda inv: pipeline.tax_invoices.issue_tax_invoice(inv.id, seed.b2b_id, seed.company_id, "a"),
                invoices,
            )
        )

    numbers = [t.tax_invoice_number for t in issued]
    assert len(set(numbers)) == 6
    assert sorted(parse_sequence("tax_invoice", n) for n in numbers) == list(range(1, 7))


def test_list_tax_invoices_paginates(pipeline, seed, paid_invoice, clock):
    for _ in range(3):
        inv = paid_invoice()
        pipeline.tax_invoices.issue_tax_invoice(inv.id, seed.b2b_id, seed.company_id, "a")

    page = pipeline.tax_invoices.list_tax_invoices(page=1, limit=2)
    assert (page.total, page.pages, page.current_page) == (3, 2, 1)
    assert [t.tax_invoice_number for t in page.items] == ["010.000-25.00000003", "010.000-25.00000002"]

    last = pipeline.tax_invoices.list_tax_invoices(page=2, limit=2)
    assert [t.tax_invoice_number for t in last.items] == ["010.000-25.00000001"]
    assert len(pipeline.tax_invoices.list_for_customer(seed.b2b_id)) == 3
    assert pipeline.tax_invoices.list_for_customer(seed.b2c_id) == []


def test_b2b_customer_without_company_is_rejected(pipeline, session_factory, seed, paid_invoice):
    with session_factory.begin() as db:
        loner = Customer(name="Agus Wijaya", email="agus@example.com", type="B2B")
        db.add(loner)
        db.flush()
        loner_id = loner.id
    invoice = paid_invoice(customer_id=loner_id)

    with pytest.raises(ValidationError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, loner_id, seed.company_id, "admin-1")

    assert ei.value.code == "COMPANY_REQUIRED"
    assert ei.value.errors == ["Data perusahaan diperlukan untuk faktur pajak"]
    assert pipeline.tax_invoices.get_by_invoice_id(invoice.id) is None
    assert pipeline.tax_invoices.list_tax_invoices().total == 0
    with session_factory() as db:
        assert db.get(Invoice, invoice.id).tax_invoice_requested is False

    t = pipeline.tax_invoices.issue_tax_invoice(paid_invoice().id, seed.b2b_id, seed.company_id, "a")
    assert parse_sequence("tax_invoice", t.tax_invoice_number) == 1


def test_customer_must_be_the_invoice_customer(pipeline, session_factory, seed, paid_invoice):
    with session_factory.begin() as db:
        colleague = Customer(
            name="Dewi Lestari", email="dewi@stjaya.co.id", type="B2B", company_id=seed.company_id
        )
        db.add(colleague)
        db.flush()
        colleague_id = colleague.id
    invoice = paid_invoice()

    with pytest.raises(ValidationError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, colleague_id, seed.company_id, "admin-1")

    assert ei.value.code == "TAX_INVOICE_CUSTOMER_MISMATCH"
    assert pipeline.tax_invoices.get_by_invoice_id(invoice.id) is None


def test_company_must_be_the_customer_company(pipeline, session_factory, seed, paid_invoice):
    with session_factory.begin() as db:
        other = Company(
            name="PT Lain Sejahtera",
            tax_id="02.345.678.9-012.000",
            registration_number="NIB-8120009876543",
            address="Jl. Gatot Subroto No. 5",
            city="Jakarta Selatan",
            province="DKI Jakarta",
        )
        db.add(other)
        db.flush()
        other_id = other.id
    invoice = paid_invoice()

    with pytest.raises(ValidationError) as ei:
        pipeline.tax_invoices.issue_tax_invoice(invoice.id, seed.b2b_id, other_id, "admin-1")

    assert ei.value.code == "COMPANY_MISMATCH"
    assert pipeline.tax_invoices.get_by_invoice_id(invoice.id) is None


def test_taken_tax_invoice_number_is_retried(
    pipeline, session_factory, seed, paid_invoice, replay_numberer, clock
):
    first = pipeline.tax_invoices.issue_tax_invoice(paid_invoice().id, seed.b2b_id, seed.company_id, "a")
    invoice = paid_invoice()

    engine = InvoiceTaxEngine(session_factory, replay_numberer(first.tax_invoice_number), clock=clock)
    t = engine.issue_tax_invoice(invoice.id, seed.b2b_id, seed.company_id, "a")

    assert t.tax_invoice_number == "010.000-25.00000002"
    assert t.invoice_id == invoice.id

    duplicate = engine._conflict_for(invoice.id, "010.000-25.99999999")
    assert (duplicate.code, duplicate.retryable) == ("TAX_INVOICE_EXISTS", False)
