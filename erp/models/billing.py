"""Invoicing and payment models.

Supports:
- GST invoices with immutable line items (priced from the item catalogue at checkout)
- GST treatment per invoice (B2B / B2C / Export / SEZ)
- Payments received against invoices
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Date, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.database import Base
from erp.db_types import UUIDType
from erp.core.enum_utils import enum_comment


# ==================== Enums ====================

class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class GstTreatment(str, Enum):
    """GST category of an outward supply."""
    B2B = "b2b"
    B2C = "b2c"
    EXPORT = "export"
    SEZ = "sez"


class PaymentMode(str, Enum):
    """How a payment was received."""
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"


# ==================== Invoice ====================

class Invoice(Base):
    """
    Tax invoice raised at checkout.
    Customer name and GSTIN are snapshotted so later customer edits do not
    rewrite filed returns.
    """
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False, comment="INV-00001")

    # Customer
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True
    )
    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    customer_gstin: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    # Dates
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Classification
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.SENT.value,
        comment=enum_comment(InvoiceStatus)
    )
    gst_treatment: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=GstTreatment.B2C.value,
        comment=enum_comment(GstTreatment)
    )

    # Amounts
    sub_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    cess_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    grand_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    balance_due: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    # Relationships
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.line_number",
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
    )

    __table_args__ = (
        UniqueConstraint('organization_id', 'invoice_number', name='uq_invoice_org_number'),
        Index('idx_invoice_org_date', 'organization_id', 'issue_date'),
    )

    def __repr__(self) -> str:
        return f"<Invoice(number='{self.invoice_number}', status='{self.status}')>"


class InvoiceItem(Base):
    """
    Invoice line. Price and rates are copied from the item at checkout.
    """
    __tablename__ = "invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("items.id", ondelete="SET NULL"),
        nullable=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    hsn_sac_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    cess_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))

    line_sub_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    line_tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    line_cess: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    line_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        return f"<InvoiceItem(name='{self.name}', qty={self.quantity})>"


# ==================== Payment ====================

class Payment(Base):
    """
    Money received against an invoice. Never mutated after creation.
    """
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    payment_number: Mapped[str] = mapped_column(String(30), nullable=False, comment="PAY-00001")
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True
    )

    amount_received: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_mode: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentMode.CASH.value,
        comment=enum_comment(PaymentMode)
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="payments")

    __table_args__ = (
        UniqueConstraint('organization_id', 'payment_number', name='uq_payment_org_number'),
    )

    def __repr__(self) -> str:
        return f"<Payment(number='{self.payment_number}', amount={self.amount_received})>"
