"""API endpoints for payments received."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from erp.api.deps import DB, OrgId
from erp.api.response import ok, http_error
from erp.config import settings
from erp.schemas.base import page_count
from erp.schemas.billing import (
    PaymentCreate,
    PaymentResponse,
    PaymentListResponse,
    InvoiceResponse,
)
from erp.services.billing_service import BillingService, BillingError


router = APIRouter(tags=["Payments"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_payment(
    data: PaymentCreate,
    db: DB,
    org_id: OrgId,
):
    """Record a payment against an invoice."""
    service = BillingService(db, org_id)
    try:
        payment = await service.record_payment(
            invoice_id=data.invoice_id,
            amount_received=data.amount_received,
            payment_mode=data.payment_mode,
            payment_date=data.payment_date,
            reference=data.reference,
            notes=data.notes,
        )
        invoice = await service.get_invoice(data.invoice_id)
    except BillingError as e:
        raise http_error(e)

    await db.commit()
    return ok(
        {
            "payment": PaymentResponse.model_validate(payment),
            "invoice": InvoiceResponse.model_validate(invoice),
        },
        message="Payment recorded",
        status_code=201,
    )


@router.get("")
async def list_payments(
    db: DB,
    org_id: OrgId,
    invoice_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    """Get payments, newest first."""
    service = BillingService(db, org_id)
    payments, total = await service.list_payments(
        invoice_id=invoice_id,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ok(
        PaymentListResponse(
            items=[PaymentResponse.model_validate(p) for p in payments],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="Payments fetched",
    )


@router.get("/{payment_id}")
async def get_payment(
    payment_id: UUID,
    db: DB,
    org_id: OrgId,
):
    """Get a payment by ID."""
    try:
        payment = await BillingService(db, org_id).get_payment(payment_id)
    except BillingError as e:
        raise http_error(e)

    return ok(PaymentResponse.model_validate(payment), message="Payment fetched")
