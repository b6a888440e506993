"""
Inventory Service

Stock levels live on the item; every change is also written to the
stock movement log with the resulting balance.
"""
import logging
from typing import Optional, List, Tuple
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enum_utils import get_enum_value
from erp.models.item import Item, StockMovement, StockReason


logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Custom exception for stock errors."""
    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class InventoryService:
    """Stock adjustments and movement history for one organization."""

    def __init__(self, db: AsyncSession, organization_id: UUID):
        self.db = db
        self.organization_id = organization_id

    async def get_item(self, item_id: UUID) -> Item:
        result = await self.db.execute(
            select(Item).where(
                and_(Item.id == item_id, Item.organization_id == self.organization_id)
            )
        )
        item = result.scalar_one_or_none()
        if not item:
            raise InventoryError("Item not found", "NOT_FOUND")
        return item

    def apply_movement(
        self,
        item: Item,
        quantity_change: int,
        reason: StockReason | str,
        reference: Optional[str] = None,
    ) -> StockMovement:
        """
        Change the stock of a loaded product and log the movement.

        The caller flushes. Raises InventoryError for services and for
        changes that would take stock below zero.
        """
        if not item.is_product:
            raise InventoryError(f"'{item.name}' is a service and has no stock", "NOT_STOCKED")

        current = item.stock_quantity or 0
        balance = current + quantity_change
        if balance < 0:
            raise InventoryError(
                f"Insufficient stock for '{item.name}'. Available: {current}, Requested: {-quantity_change}",
                "INSUFFICIENT_STOCK",
            )

        item.stock_quantity = balance
        movement = StockMovement(
            organization_id=self.organization_id,
            item_id=item.id,
            quantity_change=quantity_change,
            balance_after=balance,
            reason=get_enum_value(reason),
            reference=reference,
        )
        self.db.add(movement)
        return movement

    async def adjust(
        self,
        item_id: UUID,
        quantity_change: int,
        reason: StockReason | str = StockReason.CORRECTION,
        reference: Optional[str] = None,
    ) -> StockMovement:
        """Manual stock adjustment."""
        if quantity_change == 0:
            raise InventoryError("Quantity change cannot be zero", "INVALID_QUANTITY")

        item = await self.get_item(item_id)
        try:
            movement = self.apply_movement(item, quantity_change, reason, reference)
        except InventoryError as e:
            logger.warning(f"Stock adjustment rejected for item {item_id}: {e.message}")
            raise

        await self.db.flush()
        logger.info(
            f"Stock adjusted: item={item.name} change={quantity_change} "
            f"balance={movement.balance_after} reason={movement.reason}"
        )
        return movement

    async def list_movements(
        self,
        item_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[StockMovement], int]:
        """Movement history, newest first."""
        query = select(StockMovement).where(StockMovement.organization_id == self.organization_id)
        if item_id:
            query = query.where(StockMovement.item_id == item_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        result = await self.db.execute(
            query.order_by(StockMovement.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total
