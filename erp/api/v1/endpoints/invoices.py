"""API endpoints for invoices and checkout."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from erp.api.deps import DB, OrgId
from erp.api.response import ok, http_error
from erp.config import settings
from erp.core.enum_utils import get_enum_value
from erp.models.billing import InvoiceStatus
from erp.schemas.base import page_count
from erp.schemas.billing import (
    CheckoutCreate,
    InvoiceStatusUpdate,
    InvoiceResponse,
    InvoiceDetailResponse,
    InvoiceListResponse,
)
from erp.services.billing_service import BillingService, BillingError


router = APIRouter(tags=["Invoices"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def checkout(
    data: CheckoutCreate,
    db: DB,
    org_id: OrgId,
):
    """
    Create an invoice from a cart.
    Lines are priced from the item catalogue and product stock is decremented.
    """
    service = BillingService(db, org_id)
    try:
        invoice = await service.checkout(
            customer_id=data.customer_id,
            line_items=[line.model_dump() for line in data.line_items],
            gst_treatment=data.gst_treatment,
            issue_date=data.issue_date,
            due_date=data.due_date,
            notes=data.notes,
        )
    except BillingError as e:
        raise http_error(e)

    await db.commit()
    return ok(InvoiceDetailResponse.model_validate(invoice), message="Invoice created", status_code=201)


@router.get("")
async def list_invoices(
    db: DB,
    org_id: OrgId,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    issue_date: Optional[date] = Query(None, alias="date"),
    customer_id: Optional[UUID] = Query(None),
):
    """Get paginated list of invoices, newest first."""
    service = BillingService(db, org_id)
    invoices, total = await service.list_invoices(
        status=get_enum_value(status_filter),
        issue_date=issue_date,
        customer_id=customer_id,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ok(
        InvoiceListResponse(
            items=[InvoiceResponse.model_validate(i) for i in invoices],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="Invoices fetched",
    )


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: UUID,
    db: DB,
    org_id: OrgId,
):
    """Get an invoice with its lines."""
    try:
        invoice = await BillingService(db, org_id).get_invoice(invoice_id, with_items=True)
    except BillingError as e:
        raise http_error(e)

    return ok(InvoiceDetailResponse.model_validate(invoice), message="Invoice fetched")


@router.patch("/{invoice_id}/status")
async def update_invoice_status(
    invoice_id: UUID,
    data: InvoiceStatusUpdate,
    db: DB,
    org_id: OrgId,
):
    """Change invoice status. Paid is set by payments; cancelling restocks products."""
    service = BillingService(db, org_id)
    try:
        invoice = await service.change_status(invoice_id, data.status)
    except BillingError as e:
        raise http_error(e)

    await db.commit()
    return ok(InvoiceDetailResponse.model_validate(invoice), message="Invoice status updated")
