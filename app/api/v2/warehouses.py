"""Warehouses API - locations and what they hold."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload, joinedload
import logging

from app.api.deps import DbSession, CurrentUser, CurrentActor
from app.api.v2.inventory import stock_level_to_response
from app.exceptions import NotFoundError
from app.models.audit import AuditAction
from app.models.inventory import StockLevel
from app.models.warehouse import Warehouse
from app.schemas.inventory import WarehouseCreate, WarehouseResponse
from app.security.rbac import Permission, require_permission
from app.services.audit_recorder import AuditRecorder

logger = logging.getLogger(__name__)
router = APIRouter()


def warehouse_to_response(warehouse: Warehouse, include_inventory: bool = False) -> dict:
    levels = sorted(warehouse.stock_levels, key=lambda level: level.product_id)
    return {
        "id": warehouse.id,
        "name": warehouse.name,
        "location": warehouse.location,
        "total_units": sum(level.quantity or 0 for level in levels),
        "inventory": [stock_level_to_response(level) for level in levels if level.quantity] if include_inventory else [],
    }


def _warehouse_query():
    return select(Warehouse).options(selectinload(Warehouse.stock_levels).joinedload(StockLevel.product))


@router.get("", response_model=list[WarehouseResponse])
async def list_warehouses(
    db: DbSession,
    current_user: CurrentUser,
):
    result = await db.execute(_warehouse_query().order_by(Warehouse.name))
    return [warehouse_to_response(w) for w in result.scalars().all()]


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(
    warehouse_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Warehouse with the products it currently holds."""
    result = await db.execute(_warehouse_query().where(Warehouse.id == warehouse_id))
    warehouse = result.scalar_one_or_none()
    if warehouse is None:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse_to_response(warehouse, include_inventory=True)


@router.post("", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
async def create_warehouse(
    data: WarehouseCreate,
    db: DbSession,
    actor: CurrentActor,
    _: None = Depends(require_permission(Permission.MANAGE_WAREHOUSES)),
):
    warehouse = Warehouse(name=data.name.strip(), location=data.location)
    db.add(warehouse)
    await db.flush()
    await AuditRecorder(db).record(
        actor, AuditAction.WAREHOUSE_CREATE, "Warehouse", warehouse.id, f"Created warehouse {warehouse.name}"
    )
    await db.commit()

    logger.info(f"Warehouse {warehouse.id} '{warehouse.name}' created by user {actor.user_id}")
    return {
        "id": warehouse.id,
        "name": warehouse.name,
        "location": warehouse.location,
        "total_units": 0,
        "inventory": [],
    }
