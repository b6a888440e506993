"""GST return model.

One row per (organization, period, return type). Totals are recomputed from
invoices and payments whenever the return is generated again.
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Date, DateTime, Integer, Numeric, Text
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp.database import Base
from erp.db_types import UUIDType, JSONType
from erp.core.enum_utils import enum_comment


class GstReturnType(str, Enum):
    """GST Return types."""
    GSTR1 = "GSTR1"
    GSTR3B = "GSTR3B"
    ANNUAL = "ANNUAL"


class GstReturnStatus(str, Enum):
    """GST return filing status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    FILED = "filed"
    PAID = "paid"


class GstReturn(Base):
    """
    Prepared GST return for a calendar month.
    """
    __tablename__ = "gst_returns"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    # Period
    period: Mapped[str] = mapped_column(String(7), nullable=False, comment="YYYY-MM")
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    return_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=GstReturnType.GSTR1.value,
        comment=enum_comment(GstReturnType)
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GstReturnStatus.DRAFT.value,
        comment=enum_comment(GstReturnStatus)
    )

    # Aggregates
    total_taxable_value: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"))
    total_tax: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"))
    total_cess: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"))
    gross_turnover: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"))
    payments_received: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"))
    outstanding_tax_liability: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=Decimal("0"))
    total_invoices: Mapped[int] = mapped_column(Integer, default=0)
    total_transactions: Mapped[int] = mapped_column(Integer, default=0)
    summary_breakup: Mapped[Optional[dict]] = mapped_column(
        JSONType,
        nullable=True,
        comment="{invoices: {b2b: {count, value, tax}}, collections: {received}}"
    )

    # Filing details
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="ARN")
    filed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    generated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    status_updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

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

    __table_args__ = (
        UniqueConstraint('organization_id', 'period', 'return_type', name='uq_gst_return_org_period_type'),
    )

    def __repr__(self) -> str:
        return f"<GstReturn(period='{self.period}', type='{self.return_type}', status='{self.status}')>"
