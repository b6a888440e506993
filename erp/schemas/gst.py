"""Pydantic schemas for GST returns, drafts and transaction search."""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field

from erp.core.enum_utils import create_case_validator
from erp.models.gst import GstReturnType
from erp.schemas.base import BaseResponseSchema, CamelSchema, Money


# ==================== Requests ====================

class GstGenerateRequest(CamelSchema):
    """Generate (or regenerate) a return for a period."""
    period: str = Field(..., description="YYYY-MM")
    return_type: GstReturnType = GstReturnType.GSTR1

    _normalize_return_type = create_case_validator('return_type', GstReturnType)


class GstStatusUpdate(CamelSchema):
    """Status change of a prepared return. Status is validated by the service."""
    status: str
    notes: Optional[str] = None
    reference_number: Optional[str] = Field(None, max_length=50)


# ==================== Draft ====================

class GstTotals(CamelSchema):
    taxable_value: Money = Decimal("0")
    tax: Money = Decimal("0")
    cess: Money = Decimal("0")
    grand_total: Money = Decimal("0")
    invoices: int = 0
    collections: Money = Decimal("0")


class GstSection(CamelSchema):
    label: str
    count: int = 0
    taxable_value: Money = Decimal("0")
    tax: Money = Decimal("0")
    cess: Money = Decimal("0")
    grand_total: Money = Decimal("0")


class GstInvoicePreview(CamelSchema):
    invoice_number: str
    invoice_date: date
    customer_name: str = "N/A"
    customer_gstin: str = Field("N/A", alias="customerGSTIN")
    gst_treatment: str
    status: str
    sub_total: Money
    tax_amount: Money
    grand_total: Money


class GstDraft(CamelSchema):
    period: str
    period_start: date
    period_end: date
    totals: GstTotals
    sections: Dict[str, GstSection]
    invoices: List[GstInvoicePreview]


class GstTransactionsResponse(CamelSchema):
    period: str
    count: int
    limit: int
    items: List[GstInvoicePreview]


# ==================== Stored returns ====================

class GstReturnResponse(BaseResponseSchema):
    """Stored return document; snake_case on the wire."""
    id: UUID
    organization_id: UUID
    period: str
    period_start: date
    period_end: date
    return_type: str
    status: str
    total_taxable_value: Money
    total_tax: Money
    total_cess: Money
    gross_turnover: Money
    payments_received: Money
    outstanding_tax_liability: Money
    total_invoices: int
    total_transactions: int
    summary_breakup: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    reference_number: Optional[str] = None
    filed_at: Optional[datetime] = None
    generated_by: Optional[UUID] = None
    status_updated_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class GstReturnListResponse(BaseModel):
    data: List[GstReturnResponse]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1

