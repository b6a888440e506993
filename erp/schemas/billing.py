"""Pydantic schemas for invoicing, checkout and payments."""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from erp.core.enum_utils import create_case_validator
from erp.models.billing import InvoiceStatus, GstTreatment, PaymentMode
from erp.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, Money


# ==================== Checkout ====================

class CheckoutLine(BaseCreateSchema):
    """One cart line; price and rates come from the item catalogue."""
    item_id: UUID
    quantity: int = Field(..., gt=0)


class CheckoutCreate(BaseCreateSchema):
    """Create an invoice from a cart."""
    customer_id: UUID
    line_items: List[CheckoutLine] = Field(..., min_length=1)
    gst_treatment: Optional[GstTreatment] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None

    _normalize_treatment = create_case_validator('gst_treatment', GstTreatment)


class InvoiceStatusUpdate(BaseUpdateSchema):
    """Manual invoice status change."""
    status: InvoiceStatus

    _normalize_status = create_case_validator('status', InvoiceStatus)


# ==================== Invoice Responses ====================

class InvoiceItemResponse(BaseResponseSchema):
    """Invoice line."""
    id: UUID
    item_id: Optional[UUID] = None
    line_number: int
    name: str
    item_type: str
    hsn_sac_code: Optional[str] = None
    quantity: int
    unit_price: Money
    tax_rate: Money
    cess_rate: Money
    line_sub_total: Money
    line_tax: Money
    line_cess: Money
    line_total: Money


class InvoiceResponse(BaseResponseSchema):
    """Invoice header without lines."""
    id: UUID
    invoice_number: str
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = None
    customer_gstin: Optional[str] = None
    issue_date: date
    due_date: Optional[date] = None
    status: str
    gst_treatment: str
    sub_total: Money
    tax_amount: Money
    cess_amount: Money
    grand_total: Money
    amount_paid: Money
    balance_due: Money
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InvoiceDetailResponse(InvoiceResponse):
    """Invoice with its lines."""
    items: List[InvoiceItemResponse] = []


class InvoiceListResponse(BaseModel):
    """Response for listing Invoices."""
    items: List[InvoiceResponse]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1


# ==================== Payments ====================

class PaymentCreate(BaseCreateSchema):
    """Record money received against an invoice."""
    invoice_id: UUID
    amount_received: Decimal = Field(..., decimal_places=2)
    payment_mode: PaymentMode = PaymentMode.CASH
    payment_date: Optional[date] = None
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    _normalize_mode = create_case_validator('payment_mode', PaymentMode)


class PaymentResponse(BaseResponseSchema):
    """Response schema for Payment."""
    id: UUID
    payment_number: str
    invoice_id: UUID
    customer_id: Optional[UUID] = None
    amount_received: Money
    payment_mode: str
    payment_date: date
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class PaymentListResponse(BaseModel):
    """Response for listing Payments."""
    items: List[PaymentResponse]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1
