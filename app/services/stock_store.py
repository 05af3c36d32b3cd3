"""Stock Store - authoritative quantity per (product, warehouse).

Every mutation is a single SQL statement that checks and changes the counter
at once, so concurrent writers on the same key are serialized by the database:

- increment: INSERT .. ON CONFLICT (product_id, warehouse_id) DO UPDATE
- decrement: UPDATE .. SET quantity = quantity - n WHERE quantity >= n

The store never commits. Callers run it inside their own transaction.
"""

import logging
from typing import Iterable

from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import StockLevel
from app.services.movement_errors import InsufficientStockError, MovementValidationError

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _require_positive(delta: int) -> None:
    if isinstance(delta, bool) or not isinstance(delta, int) or delta <= 0:
        raise MovementValidationError(f"Quantity must be a positive integer, got {delta!r}")


class StockStore:
    """Atomic counter operations on stock_levels."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, product_id: int, warehouse_id: int) -> int:
        """Current quantity, 0 when the pair has never been stocked."""
        result = await self.db.execute(
            select(StockLevel.quantity).where(
                StockLevel.product_id == product_id,
                StockLevel.warehouse_id == warehouse_id,
            )
        )
        return result.scalar_one_or_none() or 0

    async def lock_levels(self, product_ids: Iterable[int], warehouse_id: int) -> dict[int, int]:
        """Read and row-lock several keys of one warehouse.

        Rows are locked in product id order so two movements touching the same
        products cannot deadlock. SQLite ignores FOR UPDATE; its single writer
        lock gives the same serialization.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}

        result = await self.db.execute(
            select(StockLevel.product_id, StockLevel.quantity)
            .where(StockLevel.warehouse_id == warehouse_id, StockLevel.product_id.in_(ids))
            .order_by(StockLevel.product_id)
            .with_for_update()
        )
        levels = {product_id: 0 for product_id in ids}
        for row in result:
            levels[row.product_id] = row.quantity
        return levels

    async def increment(self, product_id: int, warehouse_id: int, delta: int) -> None:
        """Add stock, creating the stock level row on first receipt."""
        _require_positive(delta)

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            await self._increment_portable(product_id, warehouse_id, delta)
            return

        stmt = insert(StockLevel).values(product_id=product_id, warehouse_id=warehouse_id, quantity=delta)
        stmt = stmt.on_conflict_do_update(
            index_elements=["product_id", "warehouse_id"],
            set_={
                "quantity": StockLevel.quantity + stmt.excluded.quantity,
                "updated_at": func.now(),
            },
        )
        await self.db.execute(stmt)

    async def _increment_portable(self, product_id: int, warehouse_id: int, delta: int) -> None:
        result = await self.db.execute(
            update(StockLevel)
            .where(StockLevel.product_id == product_id, StockLevel.warehouse_id == warehouse_id)
            .values(quantity=StockLevel.quantity + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.add(StockLevel(product_id=product_id, warehouse_id=warehouse_id, quantity=delta))
            await self.db.flush()

    async def decrement(self, product_id: int, warehouse_id: int, delta: int) -> None:
        """Remove stock, refusing to go below zero.

        Raises:
            InsufficientStockError: current quantity is less than delta
        """
        _require_positive(delta)

        result = await self.db.execute(
            update(StockLevel)
            .where(
                StockLevel.product_id == product_id,
                StockLevel.warehouse_id == warehouse_id,
                StockLevel.quantity >= delta,
            )
            .values(quantity=StockLevel.quantity - delta, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            available = await self.get(product_id, warehouse_id)
            logger.debug(
                f"Decrement refused: product={product_id} warehouse={warehouse_id} "
                f"requested={delta} available={available}"
            )
            raise InsufficientStockError(product_id, warehouse_id, delta, available)
