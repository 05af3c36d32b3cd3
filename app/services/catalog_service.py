"""Catalog service - product lifecycle with audit entries.

Every change and its audit entry share one transaction. Opening stock for a
new product goes through the stock store like any other receipt.
"""

import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.audit import AuditAction
from app.models.inventory import Product
from app.models.warehouse import Warehouse
from app.schemas.inventory import ProductCreate, ProductUpdate
from app.services.audit_recorder import Actor, AuditRecorder
from app.services.movement_errors import PersistenceError
from app.services.stock_store import StockStore

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base class for product catalog failures."""

    pass


class DuplicateSkuError(CatalogError):
    pass


class ProductNotFoundError(CatalogError):
    pass


def match_category(value: Optional[str]) -> str:
    """Case-insensitive match against the category whitelist, falling back to the default."""
    wanted = (value or "").strip().lower()
    for category in settings.PRODUCT_CATEGORIES:
        if category.lower() == wanted:
            return category
    return settings.DEFAULT_PRODUCT_CATEGORY


async def get_or_create_default_warehouse(db: AsyncSession) -> Warehouse:
    result = await db.execute(
        select(Warehouse)
        .where(func.lower(Warehouse.name) == settings.DEFAULT_WAREHOUSE_NAME.lower())
        .order_by(Warehouse.id)
        .limit(1)
    )
    warehouse = result.scalar_one_or_none()
    if warehouse is None:
        warehouse = Warehouse(name=settings.DEFAULT_WAREHOUSE_NAME, location=settings.DEFAULT_WAREHOUSE_LOCATION)
        db.add(warehouse)
        await db.flush()
        logger.info(f"Created default warehouse '{warehouse.name}' (id={warehouse.id})")
    return warehouse


class CatalogService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_product(
        self,
        data: ProductCreate,
        actor: Actor,
        action: AuditAction = AuditAction.PRODUCT_CREATE,
    ) -> Product:
        """Create a product and put its opening stock into the default warehouse."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    existing = await session.execute(select(Product.id).where(Product.sku == data.sku))
                    if existing.scalar_one_or_none() is not None:
                        raise DuplicateSkuError(f"SKU '{data.sku}' already exists")

                    product = Product(
                        sku=data.sku,
                        name=data.name,
                        description=data.description or "",
                        category=match_category(data.category),
                        price=data.price,
                        cost_price=data.cost_price,
                        min_stock=data.min_stock if data.min_stock is not None else settings.DEFAULT_MIN_STOCK,
                        is_archived=False,
                    )
                    session.add(product)
                    await session.flush()

                    if data.stock_level > 0:
                        warehouse = await get_or_create_default_warehouse(session)
                        await StockStore(session).increment(product.id, warehouse.id, data.stock_level)

                    verb = "Imported" if action == AuditAction.BULK_IMPORT else "Created"
                    await AuditRecorder(session).record(actor, action, "Product", product.id, f"{verb} {data.sku}")
        except IntegrityError as exc:
            raise DuplicateSkuError(f"SKU '{data.sku}' already exists") from exc
        except SQLAlchemyError as exc:
            logger.error(f"Product create failed in storage: {type(exc).__name__}: {exc}")
            raise PersistenceError("Product could not be saved") from exc

        logger.info(f"Product {product.sku} created (id={product.id}) by user {actor.user_id}")
        return product

    async def update_product(self, product_id: int, data: ProductUpdate, actor: Actor) -> Product:
        update_data = data.model_dump(exclude_unset=True)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    product = await session.get(Product, product_id)
                    if product is None:
                        raise ProductNotFoundError(f"Product with ID {product_id} was not found")

                    if "category" in update_data:
                        update_data["category"] = match_category(update_data["category"])
                    for field, value in update_data.items():
                        setattr(product, field, value)

                    await AuditRecorder(session).record(
                        actor, AuditAction.PRODUCT_UPDATE, "Product", product.id, f"Updated {product.sku}"
                    )
        except SQLAlchemyError as exc:
            logger.error(f"Product update failed in storage: {type(exc).__name__}: {exc}")
            raise PersistenceError("Product could not be saved") from exc
        return product

    async def archive_product(self, product_id: int, actor: Actor) -> Product:
        """Soft-delete: the product disappears from listings, its history stays."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    product = await session.get(Product, product_id)
                    if product is None:
                        raise ProductNotFoundError(f"Product with ID {product_id} was not found")
                    product.is_archived = True
                    await AuditRecorder(session).record(
                        actor, AuditAction.PRODUCT_ARCHIVE, "Product", product.id, f"Archived {product.sku}"
                    )
        except SQLAlchemyError as exc:
            logger.error(f"Product archive failed in storage: {type(exc).__name__}: {exc}")
            raise PersistenceError("Product could not be saved") from exc
        return product
