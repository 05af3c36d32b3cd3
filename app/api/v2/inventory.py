"""Inventory API - stock levels per warehouse and transfers between warehouses."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import joinedload
import logging

from app.api.deps import DbSession, CurrentUser, CurrentActor, Executor
from app.exceptions import NotFoundError
from app.models.inventory import Product, StockLevel
from app.models.warehouse import Warehouse
from app.schemas.inventory import StockLevelResponse
from app.schemas.movement import TransferCommand, MovementResult
from app.security.rbac import Permission, require_permission

logger = logging.getLogger(__name__)
router = APIRouter()


def stock_level_to_response(level: StockLevel) -> dict:
    return {
        "product_id": level.product_id,
        "warehouse_id": level.warehouse_id,
        "quantity": level.quantity,
        "sku": level.product.sku if level.product else None,
        "product_name": level.product.name if level.product else None,
    }


@router.get("", response_model=list[StockLevelResponse])
async def list_stock_levels(
    db: DbSession,
    current_user: CurrentUser,
    warehouse_id: int = Query(..., description="Warehouse to list"),
    include_archived: bool = Query(False),
):
    """Stock levels of one warehouse, by product name."""
    if await db.get(Warehouse, warehouse_id) is None:
        raise NotFoundError("Warehouse", warehouse_id)

    query = (
        select(StockLevel)
        .join(StockLevel.product)
        .options(joinedload(StockLevel.product))
        .where(StockLevel.warehouse_id == warehouse_id)
        .order_by(Product.name)
    )
    if not include_archived:
        query = query.where(Product.is_archived == False)  # noqa: E712

    result = await db.execute(query)
    return [stock_level_to_response(level) for level in result.scalars().all()]


@router.post("/transfer", response_model=MovementResult, status_code=status.HTTP_201_CREATED)
async def transfer_stock(
    command: TransferCommand,
    actor: CurrentActor,
    executor: Executor,
    _: None = Depends(require_permission(Permission.TRANSFER_STOCK)),
):
    """Move stock between warehouses. Nothing changes when the source lacks stock."""
    return await executor.transfer(command, actor)
