from typing import Optional
import uuid

from fastapi import APIRouter, HTTPException, status, Query
from sqlalchemy import select, delete, func, and_, or_

from erp.api.deps import DB, OrgId
from erp.api.response import ok
from erp.config import settings
from erp.core.enum_utils import get_enum_value
from erp.models.item import Item, ItemType, StockReason, StockMovement
from erp.schemas.base import page_count
from erp.schemas.item import (
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    ItemListResponse,
)
from erp.services.inventory_service import InventoryService


router = APIRouter(tags=["Items"])


async def _get_item(db: DB, org_id: uuid.UUID, item_id: uuid.UUID) -> Item:
    result = await db.execute(
        select(Item).where(and_(Item.id == item_id, Item.organization_id == org_id))
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found"
        )
    return item


@router.get("")
async def list_items(
    db: DB,
    org_id: OrgId,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    item_type: Optional[ItemType] = Query(None),
    q: Optional[str] = Query(None, description="Search by name or HSN/SAC code"),
):
    """Get paginated list of items."""
    query = select(Item).where(Item.organization_id == org_id)
    if item_type:
        query = query.where(Item.item_type == item_type.value)
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(or_(
            func.lower(Item.name).like(pattern),
            func.lower(func.coalesce(Item.hsn_sac_code, "")).like(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(Item.name).offset((page - 1) * limit).limit(limit)
    )

    return ok(
        ItemListResponse(
            items=[ItemResponse.model_validate(i) for i in result.scalars().all()],
            total=total,
            page=page,
            limit=limit,
            pages=page_count(total, limit),
        ),
        message="Items fetched",
    )


@router.get("/{item_id}")
async def get_item(
    item_id: uuid.UUID,
    db: DB,
    org_id: OrgId,
):
    """Get an item by ID."""
    item = await _get_item(db, org_id, item_id)
    return ok(ItemResponse.model_validate(item), message="Item fetched")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_item(
    data: ItemCreate,
    db: DB,
    org_id: OrgId,
):
    """
    Create a new item.
    Services never carry stock; opening stock of a product is logged as a purchase.
    """
    item_data = data.model_dump(exclude={"stock_quantity"})
    item_data["item_type"] = get_enum_value(data.item_type)

    item = Item(organization_id=org_id, **item_data)
    if item.is_product:
        item.stock_quantity = 0
    db.add(item)
    await db.flush()

    if item.is_product and data.stock_quantity:
        InventoryService(db, org_id).apply_movement(
            item, data.stock_quantity, StockReason.PURCHASE, "Opening stock"
        )

    await db.commit()
    await db.refresh(item)

    return ok(ItemResponse.model_validate(item), message="Item created", status_code=201)


@router.put("/{item_id}")
async def update_item(
    item_id: uuid.UUID,
    data: ItemUpdate,
    db: DB,
    org_id: OrgId,
):
    """Update an item. Stock is changed through inventory adjustments only."""
    item = await _get_item(db, org_id, item_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "unit_price", "tax_rate", "cess_rate"):
            continue
        setattr(item, field, value)

    await db.commit()
    await db.refresh(item)

    return ok(ItemResponse.model_validate(item), message="Item updated")


@router.delete("/{item_id}")
async def delete_item(
    item_id: uuid.UUID,
    db: DB,
    org_id: OrgId,
):
    """Delete an item and its stock history. Invoice lines keep their copy."""
    item = await _get_item(db, org_id, item_id)
    await db.execute(delete(StockMovement).where(StockMovement.item_id == item.id))
    await db.delete(item)
    await db.commit()

    return ok({"id": item_id}, message="Item deleted")
