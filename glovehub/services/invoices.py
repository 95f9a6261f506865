from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from glovehub.config import settings
from glovehub.core.logging_config import logger
from glovehub.domain.enums import DocumentKind, InvoiceStatus
from glovehub.errors import ConflictError, InvalidTransitionError, NotFoundError
from glovehub.infra.retry import retry_on
from glovehub.models.invoice import Invoice, InvoiceItem
from glovehub.models.order import Order
from glovehub.models.types import utcnow
from glovehub.observability.metrics import numbering_retries
from glovehub.services.numbering import DocumentNumberer

PAYABLE = (InvoiceStatus.PENDING.value, InvoiceStatus.OVERDUE.value)


class InvoiceIssuer:
    """Invoice for an order (at most one) and its payment."""

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

    def create_for_order(self, order_id: str, due_date: Optional[datetime] = None) -> Invoice:
        now = self._clock()
        due = due_date or now + timedelta(days=settings.invoice_due_days)

        with self._session_factory() as db:
            if db.get(Order, order_id) is None:
                raise NotFoundError("ORDER_NOT_FOUND", meta={"order_id": order_id})
            self._ensure_no_invoice(db, order_id)

        def _on_retry(attempt: int, exc: Exception, sleep_s: float) -> None:
            numbering_retries.labels(kind=DocumentKind.INVOICE.value).inc()
            logger.warning("document_number_retry", kind="invoice", attempt=attempt, error=str(exc))

        return retry_on(
            lambda attempt: self._create_once(order_id, due, now),
            attempts=settings.number_retry_attempts,
            base=settings.number_retry_base_seconds,
            cap=settings.number_retry_cap_seconds,
            is_retryable=lambda e: isinstance(e, ConflictError) and e.retryable,
            on_retry=_on_retry,
        )

    def _ensure_no_invoice(self, db: Session, order_id: str) -> None:
        existing = db.execute(select(Invoice.id).where(Invoice.order_id == order_id)).first()
        if existing is not None:
            raise ConflictError("INVOICE_ALREADY_EXISTS", meta={"order_id": order_id})

    def _create_once(self, order_id: str, due: datetime, now: datetime) -> Invoice:
        number = self._numberer.next(DocumentKind.INVOICE, now)

        try:
            with self._session_factory.begin() as db:
                order = db.get(Order, order_id)
                if order is None:
                    raise NotFoundError("ORDER_NOT_FOUND", meta={"order_id": order_id})
                self._ensure_no_invoice(db, order_id)

                invoice = Invoice(
                    invoice_number=number,
                    order_id=order.id,
                    customer_id=order.customer_id,
                    status=InvoiceStatus.PENDING.value,
                    subtotal=order.subtotal,
                    tax_amount=order.tax_amount,
                    total_amount=order.total_amount,
                    due_date=due,
                    created_at=now,
                )
                invoice.items = [
                    InvoiceItem(
                        position=item.position,
                        product_id=item.product_id,
                        sku=item.sku,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total_price=item.total_price,
                    )
                    for item in order.items
                ]
                db.add(invoice)
                db.flush()
        except IntegrityError as e:
            conflict = self._conflict_for(order_id, number)
            if conflict is None:
                raise
            raise conflict from e

        logger.info("invoice_created", invoice_id=invoice.id, invoice_number=number, order_id=order_id)
        return invoice

    def _conflict_for(self, order_id: str, number: str) -> Optional[ConflictError]:
        # which unique key the failed insert hit, read after rollback
        with self._session_factory() as db:
            if db.execute(select(Invoice.id).where(Invoice.order_id == order_id)).first():
                return ConflictError("INVOICE_ALREADY_EXISTS", meta={"order_id": order_id})
            if db.execute(select(Invoice.id).where(Invoice.invoice_number == number)).first():
                return ConflictError("DOCUMENT_NUMBER_CONFLICT", meta={"number": number}, retryable=True)
        return None

    def mark_paid(self, invoice_id: str, paid_at: Optional[datetime] = None) -> Invoice:
        paid_at = paid_at or self._clock()

        with self._session_factory.begin() as db:
            invoice = db.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError("INVOICE_NOT_FOUND", meta={"invoice_id": invoice_id})

            res = db.execute(
                update(Invoice)
                .where(Invoice.id == invoice_id, Invoice.status.in_(PAYABLE))
                .values(status=InvoiceStatus.PAID.value, paid_at=paid_at)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                db.refresh(invoice)
                code = (
                    "INVOICE_ALREADY_PAID"
                    if invoice.status == InvoiceStatus.PAID.value
                    else "INVOICE_NOT_PAYABLE"
                )
                raise InvalidTransitionError(invoice.status, InvoiceStatus.PAID, code=code)
            db.refresh(invoice)

        logger.info("invoice_paid", invoice_id=invoice_id, paid_at=paid_at.isoformat())
        return invoice

    def get_by_id(self, invoice_id: str) -> Invoice:
        with self._session_factory() as db:
            invoice = db.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError("INVOICE_NOT_FOUND", meta={"invoice_id": invoice_id})
            return invoice
