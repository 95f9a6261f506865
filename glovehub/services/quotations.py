from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from glovehub.config import settings
from glovehub.core.logging_config import logger
from glovehub.domain.enums import DocumentKind, QuotationStatus, Urgency
from glovehub.domain.models import CartLine, PricedLine, ShippingAddress
from glovehub.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from glovehub.infra.retry import retry_on
from glovehub.localization import translate
from glovehub.models.customer import Customer
from glovehub.models.product import Product
from glovehub.models.quotation import Quotation, QuotationItem, QuotationStatusLog
from glovehub.models.types import as_utc, utcnow
from glovehub.observability.metrics import numbering_retries, quotation_transitions
from glovehub.services.numbering import DocumentNumberer
from glovehub.services.pricing import PriceResolver, price_resolver

# Full state machine. EXPIRED is reached by time, CONVERTED only via OrderConverter.
TRANSITIONS: Dict[QuotationStatus, frozenset] = {
    QuotationStatus.PENDING: frozenset(
        {QuotationStatus.APPROVED, QuotationStatus.REJECTED, QuotationStatus.EXPIRED}
    ),
    QuotationStatus.APPROVED: frozenset({QuotationStatus.CONVERTED}),
    QuotationStatus.REJECTED: frozenset(),
    QuotationStatus.EXPIRED: frozenset(),
    QuotationStatus.CONVERTED: frozenset(),
}

# what an admin may request through transition()
MANUAL_TARGETS = frozenset({QuotationStatus.APPROVED, QuotationStatus.REJECTED})


def is_transition_allowed(current: QuotationStatus | str, target: QuotationStatus | str) -> bool:
    return QuotationStatus(target) in TRANSITIONS[QuotationStatus(current)]


def effective_status(quotation: Quotation, now: datetime) -> QuotationStatus:
    """
    Status as seen by readers and mutation guards: a PENDING quotation past
    valid_until is EXPIRED whether or not the sweep has persisted it yet.
    """
    status = QuotationStatus(quotation.status)
    if status is QuotationStatus.PENDING and as_utc(quotation.valid_until) < as_utc(now):
        return QuotationStatus.EXPIRED
    return status


def validity_days(urgency: Urgency | str) -> int:
    try:
        u = Urgency(urgency)
    except ValueError:
        u = Urgency.NORMAL
    if u is Urgency.VERY_URGENT:
        return settings.validity_days_very_urgent
    if u is Urgency.URGENT:
        return settings.validity_days_urgent
    return settings.validity_days_normal


def _to_cart_line(item: Any) -> CartLine:
    if isinstance(item, CartLine):
        return item
    if isinstance(item, dict):
        return CartLine(product_id=str(item.get("product_id")), quantity=item.get("quantity"))
    product_id, quantity = item
    return CartLine(product_id=str(product_id), quantity=quantity)


def _is_number_conflict(exc: Exception) -> bool:
    return isinstance(exc, ConflictError) and exc.retryable


class QuotationLifecycle:
    """Creation, approval/rejection, expiry and read projections of quotations."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        numberer: DocumentNumberer,
        *,
        resolver: PriceResolver = price_resolver,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._numberer = numberer
        self._resolver = resolver
        self._clock = clock

    # ----------------------------
    # Create
    # ----------------------------
    def create(
        self,
        customer_id: str,
        items: Iterable[Any],
        urgency: Urgency | str = Urgency.NORMAL,
        *,
        notes: Optional[str] = None,
        shipping: Optional[ShippingAddress] = None,
    ) -> Quotation:
        lines = [_to_cart_line(i) for i in items]
        self._validate_lines(lines)

        now = self._clock()

        def _on_retry(attempt: int, exc: Exception, sleep_s: float) -> None:
            numbering_retries.labels(kind=DocumentKind.QUOTATION.value).inc()
            logger.warning("document_number_retry", kind="quotation", attempt=attempt, error=str(exc))

        return retry_on(
            lambda attempt: self._create_once(customer_id, lines, urgency, notes, shipping, now, attempt),
            attempts=settings.number_retry_attempts,
            base=settings.number_retry_base_seconds,
            cap=settings.number_retry_cap_seconds,
            is_retryable=_is_number_conflict,
            on_retry=_on_retry,
        )

    def _validate_lines(self, lines: List[CartLine]) -> None:
        errors: List[str] = []
        if not lines:
            errors.append(translate("QUOTATION_EMPTY"))
        for line in lines:
            q = line.quantity
            if isinstance(q, bool) or not isinstance(q, int) or q < 1:
                errors.append(translate("QUANTITY_INVALID", product_id=line.product_id))
        if errors:
            raise ValidationError(errors, code="QUOTATION_INVALID")

    def _create_once(
        self,
        customer_id: str,
        lines: List[CartLine],
        urgency: Urgency | str,
        notes: Optional[str],
        shipping: Optional[ShippingAddress],
        now: datetime,
        attempt: int,
    ) -> Quotation:
        try:
            with self._session_factory.begin() as db:
                customer = db.get(Customer, customer_id)
                if customer is None:
                    raise NotFoundError("CUSTOMER_NOT_FOUND", meta={"customer_id": customer_id})

                priced: List[PricedLine] = []
                for line in lines:
                    product = db.get(Product, line.product_id)
                    if product is None:
                        raise NotFoundError("PRODUCT_NOT_FOUND", meta={"product_id": line.product_id})
                    priced.append(self._resolver.price_line(product, line.quantity))

                subtotal = sum(p.total_price for p in priced)
                tax_amount = 0  # PPN is charged on the tax invoice, not the quotation
                try:
                    urgency_value = Urgency(urgency).value
                except ValueError:
                    urgency_value = Urgency.NORMAL.value

                number = self._numberer.next(DocumentKind.QUOTATION, now, attempt=attempt)

                quotation = Quotation(
                    quotation_number=number,
                    customer_id=customer.id,
                    status=QuotationStatus.PENDING.value,
                    urgency=urgency_value,
                    subtotal=subtotal,
                    tax_amount=tax_amount,
                    total_amount=subtotal + tax_amount,
                    valid_until=now + timedelta(days=validity_days(urgency)),
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
                if shipping is not None:
                    quotation.shipping_address = shipping.address
                    quotation.shipping_city = shipping.city
                    quotation.shipping_province = shipping.province
                    quotation.shipping_postal_code = shipping.postal_code

                quotation.items = [
                    QuotationItem(
                        position=i,
                        product_id=p.product_id,
                        sku=p.sku,
                        quantity=p.quantity,
                        unit_price=p.unit_price,
                        total_price=p.total_price,
                    )
                    for i, p in enumerate(priced)
                ]
                quotation.status_logs = [
                    QuotationStatusLog(
                        from_status=None,
                        to_status=QuotationStatus.PENDING.value,
                        actor=customer.id,
                        notes="Quotation requested",
                        created_at=now,
                    )
                ]
                db.add(quotation)
                db.flush()
        except IntegrityError as e:
            # only a taken number is worth another attempt
            with self._session_factory() as db:
                taken = db.execute(
                    select(Quotation.id).where(Quotation.quotation_number == number)
                ).first()
            if taken is None:
                raise
            raise ConflictError(
                "DOCUMENT_NUMBER_CONFLICT", meta={"number": number}, retryable=True
            ) from e

        logger.info(
            "quotation_created",
            quotation_id=quotation.id,
            quotation_number=quotation.quotation_number,
            customer_id=customer_id,
            subtotal=quotation.subtotal,
            valid_until=quotation.valid_until.isoformat(),
        )
        return quotation

    # ----------------------------
    # Transition
    # ----------------------------
    def transition(
        self,
        quotation_id: str,
        target_status: QuotationStatus | str,
        actor: str,
        notes: Optional[str] = None,
    ) -> Quotation:
        try:
            target = QuotationStatus(target_status)
        except ValueError:
            raise ValidationError(
                [translate("INVALID_STATUS", status=target_status)], code="INVALID_STATUS"
            ) from None

        now = self._clock()

        with self._session_factory.begin() as db:
            quotation = db.execute(
                select(Quotation).where(Quotation.id == quotation_id).with_for_update()
            ).scalar_one_or_none()
            if quotation is None:
                raise NotFoundError("QUOTATION_NOT_FOUND", meta={"quotation_id": quotation_id})

            current = effective_status(quotation, now)
            if target not in MANUAL_TARGETS or not is_transition_allowed(current, target):
                self._reject(quotation, current, target)

            # compare-and-swap: only one concurrent caller can move it out of PENDING
            res = db.execute(
                update(Quotation)
                .where(
                    Quotation.id == quotation_id,
                    Quotation.status == QuotationStatus.PENDING.value,
                    Quotation.valid_until >= now,
                )
                .values(status=target.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                db.refresh(quotation)
                self._reject(quotation, effective_status(quotation, now), target)

            db.add(
                QuotationStatusLog(
                    quotation_id=quotation.id,
                    from_status=QuotationStatus.PENDING.value,
                    to_status=target.value,
                    actor=actor,
                    notes=notes,
                    created_at=now,
                )
            )
            db.flush()
            db.refresh(quotation)

        quotation_transitions.labels(to_status=target.value, result="success").inc()
        logger.info(
            "quotation_transitioned",
            quotation_id=quotation_id,
            from_status=QuotationStatus.PENDING.value,
            to_status=target.value,
            actor=actor,
        )
        return quotation

    def _reject(self, quotation: Quotation, current: QuotationStatus, target: QuotationStatus) -> None:
        quotation_transitions.labels(to_status=target.value, result="rejected").inc()
        if current is QuotationStatus.EXPIRED:
            code = "QUOTATION_EXPIRED"
        elif current is QuotationStatus.CONVERTED:
            code = "QUOTATION_ALREADY_CONVERTED"
        else:
            code = "INVALID_TRANSITION"
        logger.info(
            "quotation_transition_rejected",
            quotation_id=quotation.id,
            from_status=current.value,
            to_status=target.value,
            code=code,
        )
        raise InvalidTransitionError(current, target, code=code)

    # ----------------------------
    # Expiry sweep
    # ----------------------------
    def expire_stale(self, now: Optional[datetime] = None) -> int:
        """Persist EXPIRED for PENDING quotations past valid_until. Returns the count."""
        now = now or self._clock()
        expired = 0
        with self._session_factory.begin() as db:
            ids = db.execute(
                select(Quotation.id).where(
                    Quotation.status == QuotationStatus.PENDING.value,
                    Quotation.valid_until < now,
                )
            ).scalars().all()

            for qid in ids:
                res = db.execute(
                    update(Quotation)
                    .where(
                        Quotation.id == qid,
                        Quotation.status == QuotationStatus.PENDING.value,
                        Quotation.valid_until < now,
                    )
                    .values(status=QuotationStatus.EXPIRED.value, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount == 1:
                    expired += 1
                    db.add(
                        QuotationStatusLog(
                            quotation_id=qid,
                            from_status=QuotationStatus.PENDING.value,
                            to_status=QuotationStatus.EXPIRED.value,
                            actor="system",
                            notes="valid_until passed",
                            created_at=now,
                        )
                    )

        if expired:
            logger.info("quotations_expired", count=expired)
        return expired

    # ----------------------------
    # Queries (read-only)
    # ----------------------------
    def effective_status(self, quotation: Quotation, now: Optional[datetime] = None) -> QuotationStatus:
        return effective_status(quotation, now or self._clock())

    def get_by_id(self, quotation_id: str) -> Quotation:
        with self._session_factory() as db:
            quotation = db.get(Quotation, quotation_id)
            if quotation is None:
                raise NotFoundError("QUOTATION_NOT_FOUND", meta={"quotation_id": quotation_id})
            return quotation

    def list_by_status(self, status: QuotationStatus | str, now: Optional[datetime] = None) -> List[Quotation]:
        status = QuotationStatus(status)
        now = now or self._clock()

        if status is QuotationStatus.EXPIRED:
            cond = or_(
                Quotation.status == QuotationStatus.EXPIRED.value,
                and_(
                    Quotation.status == QuotationStatus.PENDING.value,
                    Quotation.valid_until < now,
                ),
            )
        elif status is QuotationStatus.PENDING:
            cond = and_(
                Quotation.status == QuotationStatus.PENDING.value,
                Quotation.valid_until >= now,
            )
        else:
            cond = Quotation.status == status.value

        with self._session_factory() as db:
            return list(
                db.execute(
                    select(Quotation).where(cond).order_by(Quotation.created_at.desc())
                ).scalars()
            )

    def list_for_customer(self, customer_id: str) -> List[Quotation]:
        with self._session_factory() as db:
            return list(
                db.execute(
                    select(Quotation)
                    .where(Quotation.customer_id == customer_id)
                    .order_by(Quotation.created_at.desc())
                ).scalars()
            )

    def status_log(self, quotation_id: str) -> List[QuotationStatusLog]:
        with self._session_factory() as db:
            return list(
                db.execute(
                    select(QuotationStatusLog)
                    .where(QuotationStatusLog.quotation_id == quotation_id)
                    .order_by(QuotationStatusLog.id)
                ).scalars()
            )
