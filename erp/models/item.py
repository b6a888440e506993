"""Item catalogue and stock movement models.

Products carry stock; services never do. Every stock change is written to
the movement log so the current quantity can be audited.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp.database import Base
from erp.db_types import UUIDType
from erp.core.enum_utils import enum_comment


class ItemType(str, Enum):
    """Catalogue item kind."""
    PRODUCT = "product"
    SERVICE = "service"


class StockReason(str, Enum):
    """Why stock changed."""
    PURCHASE = "purchase"
    SALE = "sale"
    RETURN = "return"
    DAMAGE = "damage"
    CORRECTION = "correction"
    CANCELLATION = "cancellation"


class Item(Base):
    """
    Sellable product or service with its GST rate and HSN/SAC code.
    """
    __tablename__ = "items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    item_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ItemType.PRODUCT.value,
        comment=enum_comment(ItemType)
    )
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="GST rate in percent"
    )
    cess_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Compensation cess in percent"
    )
    hsn_sac_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    stock_quantity: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Products only; NULL for services"
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

    movements: Mapped[List["StockMovement"]] = relationship(
        "StockMovement",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_item_org_name', 'organization_id', 'name'),
    )

    @property
    def is_product(self) -> bool:
        return self.item_type == ItemType.PRODUCT.value

    def __repr__(self) -> str:
        return f"<Item(name='{self.name}', type='{self.item_type}')>"


class StockMovement(Base):
    """
    Signed stock change for a product, with the resulting balance.
    """
    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment=enum_comment(StockReason)
    )
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    item: Mapped["Item"] = relationship("Item", back_populates="movements")

    def __repr__(self) -> str:
        return f"<StockMovement(item_id='{self.item_id}', change={self.quantity_change})>"
