"""API endpoints for stock adjustments and stock movement history."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from erp.api.deps import DB, OrgId
from erp.api.response import ok, http_error
from erp.config import settings
from erp.schemas.base import page_count
from erp.schemas.item import (
    StockAdjustmentCreate,
    StockMovementResponse,
    StockMovementListResponse,
    ItemResponse,
)
from erp.services.inventory_service import InventoryService, InventoryError


router = APIRouter(tags=["Inventory"])


@router.post("/adjust", status_code=status.HTTP_201_CREATED)
async def adjust_stock(
    data: StockAdjustmentCreate,
    db: DB,
    org_id: OrgId,
):
    """Add or remove product stock. Stock never goes below zero."""
    service = InventoryService(db, org_id)
    try:
        movement = await service.adjust(
            data.item_id,
            data.quantity_change,
            reason=data.reason,
            reference=data.reference,
        )
    except InventoryError as e:
        raise http_error(e)

    item = await service.get_item(data.item_id)
    await db.commit()

    return ok(
        {
            "movement": StockMovementResponse.model_validate(movement),
            "item": ItemResponse.model_validate(item),
        },
        message="Stock adjusted",
        status_code=201,
    )


@router.get("/movements")
async def list_movements(
    db: DB,
    org_id: OrgId,
    item_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    """Stock movement history, newest first."""
    service = InventoryService(db, org_id)
    movements, total = await service.list_movements(
        item_id=item_id,
        skip=(page - 1) * limit,
        limit=limit,
    )

    return ok(
        StockMovementListResponse(
            items=[StockMovementResponse.model_validate(m) for m in movements],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="Stock movements fetched",
    )
