from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime
import uuid

from erp.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


def _clean_gstin(v):
    if v is None:
        return v
    v = str(v).strip().upper()
    return v or None


class CustomerBase(BaseCreateSchema):
    """Base customer schema."""
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    gstin: Optional[str] = Field(None, max_length=15, description="15-char GSTIN")
    state: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator("gstin", mode="before")
    @classmethod
    def normalize_gstin(cls, v):
        return _clean_gstin(v)


class CustomerCreate(CustomerBase):
    """Customer creation schema."""
    pass


class CustomerUpdate(BaseUpdateSchema):
    """Customer update schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    gstin: Optional[str] = Field(None, max_length=15)
    state: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("gstin", mode="before")
    @classmethod
    def normalize_gstin(cls, v):
        return _clean_gstin(v)


class CustomerResponse(BaseResponseSchema):
    """Customer response schema."""
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    state: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class CustomerListResponse(BaseModel):
    """Paginated customer list."""
    items: List[CustomerResponse]
    total: int
    page: int
    limit: int
    pages: int
