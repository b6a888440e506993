"""API endpoints for GST return preparation.

Provides:
- Period draft preview bucketed by GST treatment
- Return generation (upsert per period and return type)
- Filing status tracking
- Transaction search within a period
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from erp.api.deps import DB, OrgId, CurrentUser
from erp.api.response import ok, http_error
from erp.config import settings
from erp.core.enum_utils import get_enum_value
from erp.schemas.base import page_count
from erp.schemas.gst import (
    GstGenerateRequest,
    GstStatusUpdate,
    GstDraft,
    GstTransactionsResponse,
    GstReturnResponse,
    GstReturnListResponse,
)
from erp.services.gst_service import GSTReturnService, GSTReturnError


router = APIRouter(tags=["GST"])


@router.get("")
async def list_returns(
    db: DB,
    org_id: OrgId,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    """Stored GST returns, newest period first."""
    returns, total = await GSTReturnService(db, org_id).list_returns(page=page, limit=limit)

    return ok(
        GstReturnListResponse(
            data=[GstReturnResponse.model_validate(r) for r in returns],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="GST returns fetched",
    )


@router.post("/generate", status_code=status.HTTP_201_CREATED)
async def generate_return(
    data: GstGenerateRequest,
    db: DB,
    user: CurrentUser,
):
    """Compute the period totals and store them as the return for (period, return type)."""
    service = GSTReturnService(db, user.organization_id)
    try:
        gst_return = await service.generate_return(
            period=data.period,
            return_type=get_enum_value(data.return_type),
            user_id=user.user_id,
        )
    except GSTReturnError as e:
        raise http_error(e)

    await db.commit()
    return ok(GstReturnResponse.model_validate(gst_return), message="GST summary prepared", status_code=201)


@router.get("/draft/preview")
async def preview_draft(
    db: DB,
    org_id: OrgId,
    period: str = Query(..., description="YYYY-MM"),
):
    """Draft totals and invoice rows for a period. Nothing is stored."""
    try:
        draft = await GSTReturnService(db, org_id).build_draft(period)
    except GSTReturnError as e:
        raise http_error(e)

    return ok(GstDraft.model_validate(draft), message="GST draft prepared")


@router.get("/transactions")
async def search_transactions(
    db: DB,
    org_id: OrgId,
    period: str = Query(..., description="YYYY-MM"),
    q: Optional[str] = Query(None, description="Invoice number, customer name or GSTIN"),
    treatment: Optional[str] = Query(None, description="b2b, b2c, export, sez or all"),
    status_filter: Optional[str] = Query(None, alias="status", description="Invoice status or all"),
    limit: Optional[int] = Query(None, ge=1),
):
    """Invoices of a period matching the filters."""
    try:
        result = await GSTReturnService(db, org_id).search_transactions(
            period=period,
            q=q,
            treatment=treatment,
            status=status_filter,
            limit=limit,
        )
    except GSTReturnError as e:
        raise http_error(e)

    return ok(GstTransactionsResponse.model_validate(result), message="GST transactions fetched")


@router.get("/{return_id}")
async def get_return(
    return_id: UUID,
    db: DB,
    org_id: OrgId,
):
    """GST return detail."""
    try:
        gst_return = await GSTReturnService(db, org_id).get_return(return_id)
    except GSTReturnError as e:
        raise http_error(e)

    return ok(GstReturnResponse.model_validate(gst_return), message="GST return detail fetched")


@router.patch("/{return_id}")
async def update_return_status(
    return_id: UUID,
    data: GstStatusUpdate,
    db: DB,
    user: CurrentUser,
):
    """Change filing status, notes or reference number of a return."""
    service = GSTReturnService(db, user.organization_id)
    try:
        gst_return = await service.update_status(
            return_id,
            status=data.status,
            notes=data.notes,
            reference_number=data.reference_number,
            user_id=user.user_id,
        )
    except GSTReturnError as e:
        raise http_error(e)

    await db.commit()
    return ok(GstReturnResponse.model_validate(gst_return), message="GST return updated")
