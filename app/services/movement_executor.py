"""
Movement Executor - applies inbound, outbound and transfer movements.

Each public call is one unit of work: a single database transaction holding
the stock level changes, the movement (or transfer) record and exactly one
audit entry. Either all of it commits or none of it does.

The apply_* coroutines do the work inside a transaction owned by the caller;
the batch importer uses them to add its own lookups to the same unit.
"""

import logging
from collections.abc import Collection
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import raiseload

from app.models.audit import AuditAction
from app.models.customer import Customer, Supplier
from app.models.inventory import Product
from app.models.movement import Movement, MovementDirection, MovementLine, StockTransfer
from app.models.warehouse import Warehouse
from app.schemas.movement import (
    InboundCommand,
    OutboundCommand,
    TransferCommand,
    MovementCommand,
    MovementResult,
)
from app.services.audit_recorder import Actor, AuditRecorder
from app.services.movement_errors import (
    InsufficientStockError,
    MovementValidationError,
    PersistenceError,
    StockMovementError,
)
from app.services.movement_validator import (
    validate_shape,
    validate_lines,
    validate_inbound,
    validate_outbound,
    validate_transfer,
    validate_transfer_shape,
)
from app.services.stock_store import StockStore

logger = logging.getLogger(__name__)


async def load_products(db: AsyncSession, product_ids: Collection[int]) -> dict[int, Product]:
    """Products by id; unknown ids are simply absent from the result."""
    ids = set(product_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Product).where(Product.id.in_(ids)).options(raiseload(Product.stock_levels))
    )
    return {product.id: product for product in result.scalars().all()}


def summed_by_product(items) -> list[tuple[int, int]]:
    """Quantity per product, repeated lines added together, in product id order."""
    totals: dict[int, int] = {}
    for line in items:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return sorted(totals.items())


class MovementExecutor:
    """Runs one movement per call as a single atomic unit."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def execute(self, command: MovementCommand, actor: Actor) -> MovementResult:
        """Dispatch on the command variant."""
        if isinstance(command, InboundCommand):
            return await self.receive(command, actor)
        if isinstance(command, OutboundCommand):
            return await self.ship(command, actor)
        if isinstance(command, TransferCommand):
            return await self.transfer(command, actor)
        raise MovementValidationError(f"Unsupported movement: {type(command).__name__}")

    async def receive(self, command: InboundCommand, actor: Actor) -> MovementResult:
        validate_shape(command.items)
        return await self._run_unit(command, actor, self.apply_inbound)

    async def ship(self, command: OutboundCommand, actor: Actor) -> MovementResult:
        validate_shape(command.items)
        return await self._run_unit(command, actor, self.apply_outbound)

    async def transfer(self, command: TransferCommand, actor: Actor) -> MovementResult:
        validate_transfer_shape(command)
        return await self._run_unit(command, actor, self.apply_transfer)

    async def _run_unit(self, command, actor: Actor, apply) -> MovementResult:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await apply(session, command, actor)
        except StockMovementError as exc:
            logger.warning(f"{command.kind} movement rejected: {exc}")
            raise
        except SQLAlchemyError as exc:
            logger.error(f"{command.kind} movement failed in storage: {type(exc).__name__}: {exc}")
            raise PersistenceError() from exc

        logger.info(
            f"{command.kind} movement committed: movement={result.movement_id} "
            f"transfer={result.transfer_id} lines={result.line_count} user={actor.user_id}"
        )
        return result

    # ------------------------------------------------------------------
    # Work inside a caller-owned transaction
    # ------------------------------------------------------------------

    async def apply_inbound(
        self,
        session: AsyncSession,
        command: InboundCommand,
        actor: Actor,
        action: AuditAction = AuditAction.INBOUND,
        detail: Optional[str] = None,
    ) -> MovementResult:
        warehouse = await self._require_warehouse(session, command.warehouse_id)
        if command.supplier_id is not None and await session.get(Supplier, command.supplier_id) is None:
            raise MovementValidationError(f"Unknown supplier ID {command.supplier_id}")

        products = await load_products(session, [line.product_id for line in command.items])
        validate_inbound(command, products.keys())

        movement = Movement(
            direction=MovementDirection.IN.value,
            reference=command.reference,
            warehouse_id=warehouse.id,
            supplier_id=command.supplier_id,
            movement_date=command.movement_date or datetime.now(timezone.utc),
            document_ref=command.document_ref,
            created_by=actor.user_id,
        )
        movement.lines = [
            MovementLine(product_id=line.product_id, quantity=line.quantity, unit_cost=line.unit_cost)
            for line in command.items
        ]
        session.add(movement)
        await session.flush()

        # Row locks taken in product id order, as lock_levels does
        store = StockStore(session)
        for product_id, quantity in summed_by_product(command.items):
            await store.increment(product_id, warehouse.id, quantity)

        entry = await AuditRecorder(session).record(
            actor,
            action,
            "Inbound",
            movement.id,
            detail or f"Received {len(command.items)} items into {warehouse.name} (Ref: {command.reference})",
        )
        return MovementResult(
            kind=command.kind,
            movement_id=movement.id,
            reference=command.reference,
            line_count=len(command.items),
            audit_entry_id=entry.id,
        )

    async def apply_outbound(
        self,
        session: AsyncSession,
        command: OutboundCommand,
        actor: Actor,
        action: AuditAction = AuditAction.OUTBOUND_SHIPPED,
        detail: Optional[str] = None,
    ) -> MovementResult:
        warehouse = await self._require_warehouse(session, command.warehouse_id)
        if command.customer_id is not None and await session.get(Customer, command.customer_id) is None:
            raise MovementValidationError(f"Unknown customer ID {command.customer_id}")

        products = await load_products(session, [line.product_id for line in command.items])
        validate_lines(command.items, products.keys())
        skus = {product_id: product.sku for product_id, product in products.items()}

        # Re-check sufficiency inside this transaction, against locked rows
        store = StockStore(session)
        available = await store.lock_levels(products.keys(), warehouse.id)
        validate_outbound(command, products.keys(), available, skus)

        for number, line in enumerate(command.items, start=1):
            try:
                await store.decrement(line.product_id, warehouse.id, line.quantity)
            except InsufficientStockError as exc:
                raise InsufficientStockError(
                    product_id=exc.product_id,
                    warehouse_id=exc.warehouse_id,
                    requested=exc.requested,
                    available=exc.available,
                    sku=skus.get(line.product_id),
                    line=number,
                ) from exc

        movement = Movement(
            direction=MovementDirection.OUT.value,
            reference=command.reference,
            warehouse_id=warehouse.id,
            customer_id=command.customer_id,
            destination=command.destination,
            movement_date=command.movement_date or datetime.now(timezone.utc),
            document_ref=command.document_ref,
            created_by=actor.user_id,
        )
        movement.lines = [
            MovementLine(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price if line.unit_price is not None else products[line.product_id].price,
            )
            for line in command.items
        ]
        session.add(movement)
        await session.flush()

        entry = await AuditRecorder(session).record(
            actor,
            action,
            "Outbound",
            movement.id,
            detail or f"Shipped {len(command.items)} items (Ref: {command.reference})",
        )
        return MovementResult(
            kind=command.kind,
            movement_id=movement.id,
            reference=command.reference,
            line_count=len(command.items),
            audit_entry_id=entry.id,
        )

    async def apply_transfer(
        self,
        session: AsyncSession,
        command: TransferCommand,
        actor: Actor,
    ) -> MovementResult:
        source = await self._require_warehouse(session, command.from_warehouse_id)
        target = await self._require_warehouse(session, command.to_warehouse_id)
        products = await load_products(session, [command.product_id])
        product = products.get(command.product_id)

        # Lock both keys in warehouse id order so opposite transfers cannot deadlock
        store = StockStore(session)
        levels = {}
        for warehouse_id in sorted((source.id, target.id)):
            levels[warehouse_id] = (await store.lock_levels([command.product_id], warehouse_id)).get(
                command.product_id, 0
            )
        validate_transfer(command, products.keys(), levels[source.id], product.sku if product else None)

        try:
            await store.decrement(command.product_id, source.id, command.quantity)
        except InsufficientStockError as exc:
            raise InsufficientStockError(
                product_id=exc.product_id,
                warehouse_id=exc.warehouse_id,
                requested=exc.requested,
                available=exc.available,
                sku=product.sku,
            ) from exc
        await store.increment(command.product_id, target.id, command.quantity)

        transfer = StockTransfer(
            product_id=command.product_id,
            from_warehouse_id=source.id,
            to_warehouse_id=target.id,
            quantity=command.quantity,
            created_by=actor.user_id,
        )
        session.add(transfer)
        await session.flush()

        entry = await AuditRecorder(session).record(
            actor,
            AuditAction.TRANSFER,
            "Inventory",
            command.product_id,
            f"Moved {command.quantity} units of {product.sku} from WH #{source.id} ({source.name}) "
            f"to WH #{target.id} ({target.name})",
        )
        return MovementResult(
            kind=command.kind,
            transfer_id=transfer.id,
            line_count=1,
            audit_entry_id=entry.id,
        )

    @staticmethod
    async def _require_warehouse(session: AsyncSession, warehouse_id: int) -> Warehouse:
        warehouse = await session.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise MovementValidationError(f"Unknown warehouse ID {warehouse_id}")
        return warehouse
