"""
Invoice Series Model for Atomic Number Generation

• One row per named series (e.g. "Default", "Export")
• Format: {PREFIX}{ZERO_PADDED_NUMBER}{SUFFIX}, e.g. INV-0007
• next_number is only ever read-then-incremented, never decremented
• Cancelled or deleted invoices do not return their number (gaps are fine)

USAGE:
    from invoice_engine.services.invoice_series_service import InvoiceSeriesService

    async def create_invoice(db):
        service = InvoiceSeriesService(db)
        invoice_number = await service.get_next_number(series_id)
        # Returns: INV-0001
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from invoice_engine.database import Base
from invoice_engine.services.invoice_numbering import format_invoice_number


class InvoiceSeriesAudit(Base):
    """
    Audit log for invoice series operations.

    Tracks every number handed out and every manual change for compliance.
    """
    __tablename__ = "invoice_series_audit"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    series_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True
    )
    operation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="CREATE, GET_NEXT, SET_DEFAULT"
    )
    old_number: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )
    new_number: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )
    invoice_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )


class InvoiceSeries(Base):
    """
    Named invoice number series.

    Example:
        prefix = "INV-", next_number = 7, suffix = ""
        → Next invoice number: INV-0007, next_number becomes 8
    """
    __tablename__ = "invoice_series"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True
    )
    prefix: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True
    )
    suffix: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True
    )

    # Sequence Counter
    start_with: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False
    )
    next_number: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Number the next invoice will receive"
    )

    # Status
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        default=False
    )
    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def consume_next_number(self, padding: Optional[int] = None) -> str:
        """
        Hand out the current next_number and advance the counter.

        NOTE: This method increments next_number but does NOT
        commit to database. The caller must handle the transaction.

        Returns:
            Formatted invoice number, e.g., INV-0007
        """
        number = self.next_number
        self.next_number = number + 1
        return format_invoice_number(self.prefix, number, self.suffix, padding)

    def preview_next_number(self, padding: Optional[int] = None) -> str:
        """Preview next number without incrementing."""
        return format_invoice_number(self.prefix, self.next_number, self.suffix, padding)

    def __repr__(self) -> str:
        return f"<InvoiceSeries({self.name}: {self.next_number})>"
