# glovehub/models/document_counter.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from glovehub.db import Base
from glovehub.models.types import UTCDateTime, utcnow


class DocumentCounter(Base):
    """Last issued sequence value per (document kind, period)."""

    __tablename__ = "document_counters"

    kind: Mapped[str] = mapped_column(String(20), primary_key=True)
    period: Mapped[str] = mapped_column(String(8), primary_key=True)  # e.g. "2026"
    last_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<DocumentCounter {self.kind}/{self.period} last={self.last_value}>"
