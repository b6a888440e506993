"""Pydantic schemas for the item catalogue and stock movements."""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from erp.core.enum_utils import create_case_validator
from erp.models.item import ItemType, StockReason
from erp.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, Money


# ==================== Item Schemas ====================

class ItemBase(BaseCreateSchema):
    """Base schema for Item."""
    name: str = Field(..., min_length=1, max_length=200)
    item_type: ItemType = ItemType.PRODUCT
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    cess_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    hsn_sac_code: Optional[str] = Field(None, max_length=10)

    _normalize_item_type = create_case_validator('item_type', ItemType)


class ItemCreate(ItemBase):
    """Schema for creating Item. Opening stock applies to products only."""
    stock_quantity: Optional[int] = Field(None, ge=0)


class ItemUpdate(BaseUpdateSchema):
    """Schema for updating Item. Stock changes go through inventory adjustments."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    cess_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    hsn_sac_code: Optional[str] = Field(None, max_length=10)


class ItemResponse(BaseResponseSchema):
    """Response schema for Item."""
    id: UUID
    name: str
    item_type: str
    unit_price: Money
    tax_rate: Money
    cess_rate: Money
    hsn_sac_code: Optional[str] = None
    stock_quantity: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ItemListResponse(BaseModel):
    """Response for listing Items."""
    items: List[ItemResponse]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1


# ==================== Stock Movement Schemas ====================

class StockAdjustmentCreate(BaseCreateSchema):
    """Manual stock adjustment."""
    item_id: UUID
    quantity_change: int = Field(..., description="Positive to add stock, negative to remove")
    reason: StockReason = StockReason.CORRECTION
    reference: Optional[str] = Field(None, max_length=100)

    _normalize_reason = create_case_validator('reason', StockReason)


class StockMovementResponse(BaseResponseSchema):
    """Response schema for StockMovement."""
    id: UUID
    item_id: UUID
    quantity_change: int
    balance_after: int
    reason: str
    reference: Optional[str] = None
    created_at: datetime


class StockMovementListResponse(BaseModel):
    """Response for listing StockMovements."""
    items: List[StockMovementResponse]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1
