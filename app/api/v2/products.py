"""Products API - catalog management and product import."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from app.api.deps import DbSession, CurrentUser, CurrentActor, SessionFactory, Importer
from app.exceptions import NotFoundError
from app.models.inventory import Product, StockLevel
from app.schemas.inventory import ProductCreate, ProductUpdate, ProductResponse
from app.schemas.movement import BatchImportResponse
from app.security.rbac import Permission, require_permission
from app.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)
router = APIRouter()


def product_to_response(product: Product) -> dict:
    """Convert Product model to response dict with per-warehouse locations."""
    levels = sorted(product.stock_levels, key=lambda level: level.warehouse_id)

    return {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "price": product.price or 0.0,
        "cost_price": product.cost_price or 0.0,
        "min_stock": product.min_stock or 0,
        "is_archived": bool(product.is_archived),
        "stock_level": product.total_stock,
        "needs_reorder": product.needs_reorder,
        "locations": [
            {
                "warehouse_id": level.warehouse_id,
                "warehouse_name": level.warehouse.name if level.warehouse else None,
                "quantity": level.quantity,
            }
            for level in levels
        ],
        "created_at": product.created_at.isoformat() if product.created_at else None,
        "updated_at": product.updated_at.isoformat() if product.updated_at else None,
    }


def _product_query():
    return select(Product).options(selectinload(Product.stock_levels).joinedload(StockLevel.warehouse))


async def _load_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(_product_query().where(Product.id == product_id).execution_options(populate_existing=True))
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


@router.get("", response_model=list[ProductResponse])
async def list_products(
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,  # Search by SKU or name
    category: Optional[str] = None,
    include_archived: bool = Query(False),
):
    query = _product_query()
    if not include_archived:
        query = query.where(Product.is_archived == False)  # noqa: E712
    if category:
        query = query.where(Product.category == category)
    if search:
        search_pattern = f"%{search}%"
        query = query.where((Product.sku.ilike(search_pattern)) | (Product.name.ilike(search_pattern)))

    result = await db.execute(query.order_by(Product.created_at.desc(), Product.id.desc()))
    return [product_to_response(p) for p in result.scalars().all()]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    return product_to_response(await _load_product(db, product_id))


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    db: DbSession,
    actor: CurrentActor,
    session_factory: SessionFactory,
    _: None = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
):
    """Create a product; opening stock lands in the default warehouse."""
    product = await CatalogService(session_factory).create_product(data, actor)
    return product_to_response(await _load_product(db, product.id))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: DbSession,
    actor: CurrentActor,
    session_factory: SessionFactory,
    _: None = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
):
    """Update catalog fields. SKU and stock are not editable here."""
    await CatalogService(session_factory).update_product(product_id, data, actor)
    return product_to_response(await _load_product(db, product_id))


@router.delete("/{product_id}")
async def archive_product(
    product_id: int,
    actor: CurrentActor,
    session_factory: SessionFactory,
    _: None = Depends(require_permission(Permission.ARCHIVE_PRODUCTS)),
):
    """Archive (soft-delete) a product. Its movement history is kept."""
    product = await CatalogService(session_factory).archive_product(product_id, actor)
    return {"message": "Product archived", "id": product.id}


@router.post("/bulk", response_model=BatchImportResponse)
async def create_bulk_products(
    rows: list[dict[str, Any]],
    actor: CurrentActor,
    importer: Importer,
    _: None = Depends(require_permission(Permission.BULK_IMPORT)),
):
    results = await importer.import_products(rows, actor)
    return BatchImportResponse(message="Product import processed", results=results)
