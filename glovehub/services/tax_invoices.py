from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from glovehub.config import settings
from glovehub.core.logging_config import logger
from glovehub.domain.enums import CustomerType, DocumentKind, InvoiceStatus
from glovehub.errors import ConflictError, NotFoundError, PipelineError, ValidationError
from glovehub.infra.retry import retry_on
from glovehub.localization import translate
from glovehub.models.customer import Company, Customer
from glovehub.models.invoice import Invoice, TaxInvoice
from glovehub.models.types import utcnow
from glovehub.observability.metrics import numbering_retries, tax_invoices_issued
from glovehub.services.numbering import DocumentNumberer
from glovehub.services.tax import calc_ppn

# 01.234.567.8-901.000
NPWP_RE = re.compile(r"^\d{2}\.\d{3}\.\d{3}\.\d{1}-\d{3}\.\d{3}$")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class TaxInfoCheck:
    is_valid: bool
    errors: Tuple[str, ...] = ()


@dataclass
class TaxInvoicePage:
    items: List[TaxInvoice] = field(default_factory=list)
    total: int = 0
    pages: int = 0
    current_page: int = 1
    limit: int = 10


def validate_tax_information(customer: Customer, company: Optional[Company]) -> TaxInfoCheck:
    """Every violated tax-identity rule for a B2B customer, not just the first."""
    if company is None:
        return TaxInfoCheck(False, (translate("COMPANY_REQUIRED"),))

    errors: List[str] = []
    npwp = (company.tax_id or "").strip()
    if not npwp:
        errors.append(translate("NPWP_REQUIRED"))
    elif not NPWP_RE.match(npwp):
        errors.append(translate("NPWP_INVALID"))

    if not (company.registration_number or "").strip():
        errors.append(translate("REGISTRATION_REQUIRED"))

    if not all((v or "").strip() for v in (company.address, company.city, company.province)):
        errors.append(translate("ADDRESS_INCOMPLETE"))

    return TaxInfoCheck(not errors, tuple(errors))


class InvoiceTaxEngine:
    """PPN computation and Faktur Pajak issuance for paid B2B invoices."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        numberer: DocumentNumberer,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._numberer = numberer
        self._clock = clock

    # ----------------------------
    # Issue
    # ----------------------------
    def issue_tax_invoice(
        self,
        invoice_id: str,
        customer_id: str,
        company_id: str,
        issued_by: str,
    ) -> TaxInvoice:
        now = self._clock()

        def _on_retry(attempt: int, exc: Exception, sleep_s: float) -> None:
            numbering_retries.labels(kind=DocumentKind.TAX_INVOICE.value).inc()
            logger.warning("document_number_retry", kind="tax_invoice", attempt=attempt, error=str(exc))

        try:
            # rejected requests must not consume a tax invoice number
            with self._session_factory() as db:
                self._check_eligible(db, invoice_id, customer_id, company_id)

            tax_invoice = retry_on(
                lambda attempt: self._issue_once(invoice_id, customer_id, company_id, issued_by, now),
                attempts=settings.number_retry_attempts,
                base=settings.number_retry_base_seconds,
                cap=settings.number_retry_cap_seconds,
                is_retryable=lambda e: isinstance(e, ConflictError) and e.retryable,
                on_retry=_on_retry,
            )
        except ConflictError:
            tax_invoices_issued.labels(result="conflict").inc()
            raise
        except PipelineError as e:
            tax_invoices_issued.labels(result="invalid").inc()
            logger.info("tax_invoice_rejected", invoice_id=invoice_id, code=e.code)
            raise

        tax_invoices_issued.labels(result="success").inc()
        logger.info(
            "tax_invoice_issued",
            tax_invoice_id=tax_invoice.id,
            tax_invoice_number=tax_invoice.tax_invoice_number,
            invoice_id=invoice_id,
            ppn_amount=tax_invoice.ppn_amount,
            total_with_ppn=tax_invoice.total_with_ppn,
            issued_by=issued_by,
        )
        return tax_invoice

    def _check_eligible(
        self, db: Session, invoice_id: str, customer_id: str, company_id: str
    ) -> Tuple[Invoice, Customer, Company]:
        invoice = db.execute(
            select(Invoice).where(Invoice.id == invoice_id).with_for_update()
        ).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("INVOICE_NOT_FOUND", meta={"invoice_id": invoice_id})
        customer = db.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("CUSTOMER_NOT_FOUND", meta={"customer_id": customer_id})
        company = db.get(Company, company_id)
        if company is None:
            raise NotFoundError("COMPANY_NOT_FOUND", meta={"company_id": company_id})

        if invoice.status != InvoiceStatus.PAID.value:
            raise ValidationError([translate("INVOICE_NOT_PAID")], code="INVOICE_NOT_PAID")

        existing = db.execute(
            select(TaxInvoice.id).where(TaxInvoice.invoice_id == invoice_id)
        ).first()
        if existing is not None:
            raise ConflictError("TAX_INVOICE_EXISTS", meta={"invoice_id": invoice_id})

        if customer.type != CustomerType.B2B.value:
            raise ValidationError([translate("TAX_INVOICE_B2B_ONLY")], code="TAX_INVOICE_B2B_ONLY")
        if invoice.customer_id != customer.id:
            raise ValidationError(
                [translate("TAX_INVOICE_CUSTOMER_MISMATCH")], code="TAX_INVOICE_CUSTOMER_MISMATCH"
            )
        if customer.company_id is None:
            raise ValidationError([translate("COMPANY_REQUIRED")], code="COMPANY_REQUIRED")
        if customer.company_id != company.id:
            raise ValidationError([translate("COMPANY_MISMATCH")], code="COMPANY_MISMATCH")

        check = validate_tax_information(customer, company)
        if not check.is_valid:
            raise ValidationError(list(check.errors), code="TAX_INFO_INVALID")

        return invoice, customer, company

    def _issue_once(
        self,
        invoice_id: str,
        customer_id: str,
        company_id: str,
        issued_by: str,
        now: datetime,
    ) -> TaxInvoice:
        number = self._numberer.next(DocumentKind.TAX_INVOICE, now)

        try:
            with self._session_factory.begin() as db:
                invoice, customer, company = self._check_eligible(db, invoice_id, customer_id, company_id)

                breakdown = calc_ppn(invoice.subtotal, settings.ppn_rate)
                tax_invoice = TaxInvoice(
                    tax_invoice_number=number,
                    invoice_id=invoice.id,
                    customer_id=customer.id,
                    company_id=company.id,
                    ppn_rate=breakdown.ppn_rate,
                    ppn_amount=breakdown.ppn_amount,
                    total_with_ppn=breakdown.total_with_ppn,
                    issued_at=now,
                    issued_by=issued_by,
                    created_at=now,
                )
                tax_invoice.invoice = invoice
                invoice.tax_invoice_requested = True
                db.add(tax_invoice)
                db.flush()
        except IntegrityError as e:
            conflict = self._conflict_for(invoice_id, number)
            if conflict is None:
                raise
            raise conflict from e

        return tax_invoice

    def _conflict_for(self, invoice_id: str, number: str) -> Optional[ConflictError]:
        """
        Name the unique key a failed insert hit, looked up after rollback.
        None when neither the invoice nor the number is taken (e.g. a foreign key).
        """
        with self._session_factory() as db:
            if db.execute(select(TaxInvoice.id).where(TaxInvoice.invoice_id == invoice_id)).first():
                return ConflictError("TAX_INVOICE_EXISTS", meta={"invoice_id": invoice_id})
            if db.execute(
                select(TaxInvoice.id).where(TaxInvoice.tax_invoice_number == number)
            ).first():
                return ConflictError("DOCUMENT_NUMBER_CONFLICT", meta={"number": number}, retryable=True)
        return None

    # ----------------------------
    # Queries (read-only)
    # ----------------------------
    def get_by_id(self, tax_invoice_id: str) -> TaxInvoice:
        with self._session_factory() as db:
            tax_invoice = db.get(TaxInvoice, tax_invoice_id)
            if tax_invoice is None:
                raise NotFoundError("TAX_INVOICE_NOT_FOUND", meta={"tax_invoice_id": tax_invoice_id})
            return tax_invoice

    def get_by_invoice_id(self, invoice_id: str) -> Optional[TaxInvoice]:
        with self._session_factory() as db:
            return db.execute(
                select(TaxInvoice).where(TaxInvoice.invoice_id == invoice_id)
            ).scalar_one_or_none()

    def list_tax_invoices(self, page: int = 1, limit: int = 10) -> TaxInvoicePage:
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_SIZE)

        with self._session_factory() as db:
            total = db.execute(select(func.count(TaxInvoice.id))).scalar_one()
            items = list(
                db.execute(
                    select(TaxInvoice)
                    .order_by(TaxInvoice.issued_at.desc(), TaxInvoice.tax_invoice_number.desc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                ).scalars()
            )

        return TaxInvoicePage(
            items=items,
            total=total,
            pages=math.ceil(total / limit) if total else 0,
            current_page=page,
            limit=limit,
        )

    def list_for_customer(self, customer_id: str) -> List[TaxInvoice]:
        with self._session_factory() as db:
            return list(
                db.execute(
                    select(TaxInvoice)
                    .where(TaxInvoice.customer_id == customer_id)
                    .order_by(TaxInvoice.issued_at.desc())
                ).scalars()
            )
