from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from glovehub.config import settings
from glovehub.core.logging_config import logger
from glovehub.domain.enums import DocumentKind, OrderStatus, QuotationStatus
from glovehub.errors import ConflictError, ConversionError, NotFoundError, PipelineError
from glovehub.infra.retry import retry_on
from glovehub.models.order import Order, OrderItem, OrderStatusLog
from glovehub.models.quotation import Quotation, QuotationStatusLog
from glovehub.models.types import utcnow
from glovehub.observability.metrics import numbering_retries, orders_converted
from glovehub.services.numbering import DocumentNumberer
from glovehub.services.quotations import effective_status


def _is_number_conflict(exc: Exception) -> bool:
    return isinstance(exc, ConflictError) and exc.retryable


class OrderConverter:
    """
    Turns an APPROVED quotation into exactly one Order.

    Items are copied with their locked prices; nothing is re-resolved against
    the current pricing tiers.
    """

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

    def convert(self, quotation_id: str, actor: str) -> Order:
        now = self._clock()

        # cheap precheck so rejected calls do not consume an order number
        with self._session_factory() as db:
            quotation = db.get(Quotation, quotation_id)
            if quotation is None:
                raise NotFoundError("QUOTATION_NOT_FOUND", meta={"quotation_id": quotation_id})
            self._check_convertible(quotation, now)

        def _on_retry(attempt: int, exc: Exception, sleep_s: float) -> None:
            numbering_retries.labels(kind=DocumentKind.ORDER.value).inc()
            logger.warning("document_number_retry", kind="order", attempt=attempt, error=str(exc))

        return retry_on(
            lambda attempt: self._convert_once(quotation_id, actor, now),
            attempts=settings.number_retry_attempts,
            base=settings.number_retry_base_seconds,
            cap=settings.number_retry_cap_seconds,
            is_retryable=_is_number_conflict,
            on_retry=_on_retry,
        )

    def _check_convertible(self, quotation: Quotation, now: datetime) -> None:
        current = effective_status(quotation, now)
        if current is QuotationStatus.CONVERTED or quotation.converted_order_id:
            orders_converted.labels(result="rejected").inc()
            raise ConversionError(current, QuotationStatus.CONVERTED, code="QUOTATION_ALREADY_CONVERTED")
        if current is not QuotationStatus.APPROVED:
            orders_converted.labels(result="rejected").inc()
            raise ConversionError(current, QuotationStatus.CONVERTED, code="QUOTATION_NOT_APPROVED")

    def _convert_once(self, quotation_id: str, actor: str, now: datetime) -> Order:
        order_number = self._numberer.next(DocumentKind.ORDER, now)

        try:
            with self._session_factory.begin() as db:
                quotation = db.execute(
                    select(Quotation).where(Quotation.id == quotation_id).with_for_update()
                ).scalar_one_or_none()
                if quotation is None:
                    raise NotFoundError("QUOTATION_NOT_FOUND", meta={"quotation_id": quotation_id})
                self._check_convertible(quotation, now)

                order = Order(
                    order_number=order_number,
                    customer_id=quotation.customer_id,
                    quotation_id=quotation.id,
                    status=OrderStatus.NEW.value,
                    subtotal=quotation.subtotal,
                    tax_amount=quotation.tax_amount,
                    total_amount=quotation.total_amount,
                    shipping_address=quotation.shipping_address,
                    shipping_city=quotation.shipping_city,
                    shipping_province=quotation.shipping_province,
                    shipping_postal_code=quotation.shipping_postal_code,
                    created_at=now,
                    updated_at=now,
                )
                order.items = [
                    OrderItem(
                        position=item.position,
                        product_id=item.product_id,
                        sku=item.sku,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total_price=item.total_price,
                    )
                    for item in quotation.items
                ]
                order.status_logs = [
                    OrderStatusLog(
                        from_status=None,
                        to_status=OrderStatus.NEW.value,
                        actor=actor,
                        notes=f"Order created from quotation {quotation.quotation_number}",
                        created_at=now,
                    )
                ]
                db.add(order)
                db.flush()

                # status flip guarded on the state we checked; losing it rolls the order back
                res = db.execute(
                    update(Quotation)
                    .where(
                        Quotation.id == quotation_id,
                        Quotation.status == QuotationStatus.APPROVED.value,
                        Quotation.converted_order_id.is_(None),
                    )
                    .values(
                        status=QuotationStatus.CONVERTED.value,
                        converted_order_id=order.id,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount != 1:
                    orders_converted.labels(result="rejected").inc()
                    raise ConversionError(
                        QuotationStatus.APPROVED,
                        QuotationStatus.CONVERTED,
                        code="QUOTATION_ALREADY_CONVERTED",
                    )

                db.add(
                    QuotationStatusLog(
                        quotation_id=quotation_id,
                        from_status=QuotationStatus.APPROVED.value,
                        to_status=QuotationStatus.CONVERTED.value,
                        actor=actor,
                        notes=f"Converted to order {order_number}",
                        created_at=now,
                    )
                )
        except IntegrityError as e:
            conflict = self._conflict_for(quotation_id, order_number)
            if conflict is None:
                raise
            raise conflict from e

        orders_converted.labels(result="success").inc()
        logger.info(
            "order_converted",
            quotation_id=quotation_id,
            order_id=order.id,
            order_number=order_number,
            actor=actor,
            total=order.total_amount,
        )
        return order

    def _conflict_for(self, quotation_id: str, order_number: str) -> Optional[PipelineError]:
        # which unique key the failed insert hit, read after rollback
        with self._session_factory() as db:
            if db.execute(select(Order.id).where(Order.quotation_id == quotation_id)).first():
                orders_converted.labels(result="rejected").inc()
                return ConversionError(
                    QuotationStatus.CONVERTED,
                    QuotationStatus.CONVERTED,
                    code="QUOTATION_ALREADY_CONVERTED",
                )
            if db.execute(select(Order.id).where(Order.order_number == order_number)).first():
                return ConflictError(
                    "DOCUMENT_NUMBER_CONFLICT", meta={"number": order_number}, retryable=True
                )
        return None

    def get_by_id(self, order_id: str) -> Order:
        with self._session_factory() as db:
            order = db.get(Order, order_id)
            if order is None:
                raise NotFoundError("ORDER_NOT_FOUND", meta={"order_id": order_id})
            return order

    def get_by_quotation_id(self, quotation_id: str) -> Optional[Order]:
        with self._session_factory() as db:
            return db.execute(
                select(Order).where(Order.quotation_id == quotation_id)
            ).scalar_one_or_none()
