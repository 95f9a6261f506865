from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from glovehub.config import settings
from glovehub.core.logging_config import logger
from glovehub.domain.enums import DocumentKind
from glovehub.models.document_counter import DocumentCounter
from glovehub.models.invoice import Invoice, TaxInvoice
from glovehub.models.order import Order
from glovehub.models.types import as_utc, utcnow
from glovehub.observability.metrics import documents_numbered

TAX_INVOICE_RE = re.compile(r"^010\.000-\d{2}\.\d{8}$")

_SEQ_PATTERNS = {
    DocumentKind.TAX_INVOICE: re.compile(r"-\d{2}\.(\d{8})$"),
    DocumentKind.ORDER: re.compile(r"^ORD-\d{4}-(\d{6})$"),
    DocumentKind.INVOICE: re.compile(r"^INV-\d{4}-(\d{6})$"),
    DocumentKind.QUOTATION: re.compile(r"^QUO-\d{8}-(\d{6})$"),
}


def parse_sequence(kind: DocumentKind | str, number: str) -> Optional[int]:
    """Trailing sequence of a formatted number, or None if it does not parse."""
    pattern = _SEQ_PATTERNS[DocumentKind(kind)]
    m = pattern.search(number or "")
    return int(m.group(1)) if m else None


class DocumentNumberer:
    """
    Collision-free document numbers.

    quotation    QUO-YYYYMMDD-NNNNNN   time based (epoch millis), no counter
    order        ORD-YYYY-NNNNNN       per-year sequence
    invoice      INV-YYYY-NNNNNN       per-year sequence
    tax_invoice  010.000-YY.NNNNNNNN   per-year sequence

    Sequences come from an atomic increment-and-read on document_counters,
    run in a short transaction of its own. A value handed out to a caller
    whose transaction later rolls back is simply skipped.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        tax_invoice_prefix: Optional[str] = None,
        tz: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.tax_invoice_prefix = tax_invoice_prefix or settings.tax_invoice_prefix
        self.tz = ZoneInfo(tz or settings.business_timezone)
        self._clock = clock

    # ---- public ------------------------------------------------------

    def next(self, kind: DocumentKind | str, now: Optional[datetime] = None, attempt: int = 0) -> str:
        kind = DocumentKind(kind)
        local = self._local(now or self._clock())

        if kind is DocumentKind.QUOTATION:
            number = self.format_quotation(local, attempt)
        else:
            seq = self._next_sequence(kind, str(local.year))
            number = self.format(kind, local, seq)

        documents_numbered.labels(kind=kind.value).inc()
        logger.info("document_number_issued", kind=kind.value, number=number, attempt=attempt)
        return number

    def format(self, kind: DocumentKind | str, local: datetime, seq: int) -> str:
        kind = DocumentKind(kind)
        if kind is DocumentKind.TAX_INVOICE:
            return f"{self.tax_invoice_prefix}-{local.year % 100:02d}.{seq:08d}"
        if kind is DocumentKind.ORDER:
            return f"ORD-{local.year:04d}-{seq:06d}"
        if kind is DocumentKind.INVOICE:
            return f"INV-{local.year:04d}-{seq:06d}"
        raise ValueError(f"{kind.value} numbers are not sequence based")

    def format_quotation(self, local: datetime, attempt: int = 0) -> str:
        millis = int(local.timestamp() * 1000)
        suffix = (millis + attempt) % 1_000_000
        return f"QUO-{local:%Y%m%d}-{suffix:06d}"

    # ---- internals ---------------------------------------------------

    def _local(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return as_utc(now).astimezone(self.tz)

    def _next_sequence(self, kind: DocumentKind, period: str) -> int:
        # a second round only happens when a concurrent caller seeded the row first
        for _ in range(3):
            try:
                with self._session_factory.begin() as db:
                    res = db.execute(
                        update(DocumentCounter)
                        .where(DocumentCounter.kind == kind.value, DocumentCounter.period == period)
                        .values(last_value=DocumentCounter.last_value + 1, updated_at=utcnow())
                    )
                    if res.rowcount == 1:
                        return db.execute(
                            select(DocumentCounter.last_value).where(
                                DocumentCounter.kind == kind.value,
                                DocumentCounter.period == period,
                            )
                        ).scalar_one()

                    value = self._highest_existing(db, kind, int(period)) + 1
                    db.add(DocumentCounter(kind=kind.value, period=period, last_value=value))
                    db.flush()
                    return value
            except IntegrityError:
                logger.warning("document_counter_seed_race", kind=kind.value, period=period)
                continue
        raise RuntimeError(f"could not allocate {kind.value} number for {period}")

    def _highest_existing(self, db: Session, kind: DocumentKind, year: int) -> int:
        """Highest sequence already persisted for the year (legacy rows without a counter)."""
        if kind is DocumentKind.TAX_INVOICE:
            col, like = TaxInvoice.tax_invoice_number, f"%-{year % 100:02d}.%"
        elif kind is DocumentKind.ORDER:
            col, like = Order.order_number, f"ORD-{year:04d}-%"
        else:
            col, like = Invoice.invoice_number, f"INV-{year:04d}-%"

        best = 0
        for number in db.execute(select(col).where(col.like(like))).scalars():
            seq = parse_sequence(kind, number)
            if seq is not None and seq > best:
                best = seq
        return best
