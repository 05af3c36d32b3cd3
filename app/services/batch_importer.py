"""Batch Importer - bulk inbound, outbound and product imports.

Rows arrive already split into columns (the CSV text itself is parsed by the
caller). Movement rows are grouped into shipments by their reference; each
group is resolved and applied in its own transaction, so a bad group is
reported and skipped while every other group still commits.

Supports:
- Bulk inbound (one movement per invoice reference)
- Bulk outbound (one movement per order reference)
- Product catalog import (one transaction per row)
"""

import asyncio
import logging
import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import raiseload

from app.config import settings
from app.models.audit import AuditAction
from app.models.customer import Customer, Supplier
from app.models.inventory import Product
from app.models.warehouse import Warehouse
from app.schemas.inventory import ProductCreate
from app.schemas.movement import (
    BatchImportResult,
    BulkInboundRow,
    BulkOutboundRow,
    BulkProductRow,
    InboundCommand,
    MovementLineIn,
    OutboundCommand,
)
from app.services.audit_recorder import Actor
from app.services.catalog_service import CatalogError, CatalogService
from app.services.movement_errors import (
    MovementValidationError,
    PersistenceError,
    ReferenceResolutionError,
    StockMovementError,
)
from app.services.movement_executor import MovementExecutor

logger = logging.getLogger(__name__)


class ImportType(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    PRODUCTS = "products"


# ========================
# Template Generators
# ========================

TEMPLATES = {
    ImportType.INBOUND: ["reference", "date", "warehouse", "supplier", "sku", "quantity", "cost"],
    ImportType.OUTBOUND: ["reference", "date", "warehouse", "customer", "sku", "quantity", "price"],
    ImportType.PRODUCTS: ["sku", "name", "description", "category", "price", "cost_price", "min_stock", "stock_level"],
}

EXAMPLES = {
    ImportType.INBOUND: "INV-1001,2025-01-15,Main,Acme Supply,WID-1,20,4.50",
    ImportType.OUTBOUND: "SO-2001,2025-01-16,Main,Walk-in Customer,WID-1,5,9.99",
    ImportType.PRODUCTS: "WID-1,Widget,Standard widget,Electronics,9.99,4.50,10,50",
}


def generate_csv_template(import_type: ImportType, include_examples: bool = False) -> str:
    """CSV header line for the given import type, optionally with an example row."""
    template = ",".join(TEMPLATES[import_type]) + "\n"
    if include_examples:
        template += EXAMPLES[import_type] + "\n"
    return template


# ========================
# Row helpers
# ========================

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _column_key(name: Any) -> str:
    # costPrice, Cost Price and cost_price all name the same column
    key = _CAMEL_BOUNDARY.sub("_", str(name).strip())
    return key.lower().replace(" ", "_")


def normalize_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Lower-case, underscore-separated column names."""
    return {_column_key(k): v for k, v in row.items() if k is not None}


def format_validation_error(row_num: int, error: ValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'row'}: {err['msg']}" for err in error.errors()
    )
    return f"Row {row_num}: {problems}"


def group_rows(
    rows: Sequence[Mapping[str, Any]],
    placeholder_prefix: str,
    run_token: str,
) -> dict[str, list[tuple[int, dict[str, Any]]]]:
    """Group rows by reference, keeping first-appearance order.

    A row without a reference gets a placeholder unique to this run and row,
    so reference-less rows never merge into one shipment.
    """
    groups: dict[str, list[tuple[int, dict[str, Any]]]] = {}
    for row_num, raw in enumerate(rows, start=1):
        row = normalize_row(raw)
        reference = str(row.get("reference") or "").strip()
        if not reference:
            reference = f"{placeholder_prefix}-{run_token}-{row_num}"
        groups.setdefault(reference, []).append((row_num, row))
    return groups


def parse_group(group: list[tuple[int, dict[str, Any]]], row_model: type[BaseModel]) -> list:
    parsed, problems = [], []
    for row_num, row in group:
        try:
            parsed.append(row_model.model_validate(row))
        except ValidationError as e:
            problems.append(format_validation_error(row_num, e))
    if problems:
        raise MovementValidationError("; ".join(problems))
    return parsed


@dataclass(frozen=True)
class _BatchKind:
    """Differences between bulk inbound and bulk outbound."""

    label: str  # prefix of error messages
    placeholder_prefix: str
    row_model: type[BaseModel]


INBOUND_BATCH = _BatchKind(label="Invoice", placeholder_prefix="BULK-IMPORT", row_model=BulkInboundRow)
OUTBOUND_BATCH = _BatchKind(label="Order", placeholder_prefix="BULK-OUT", row_model=BulkOutboundRow)


class BatchImporter:
    """Applies bulk rows group by group through the movement executor."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        executor: Optional[MovementExecutor] = None,
    ):
        self.session_factory = session_factory
        self.executor = executor or MovementExecutor(session_factory)

    async def import_inbound(
        self,
        rows: Sequence[Mapping[str, Any]],
        actor: Actor,
        cancel: Optional[asyncio.Event] = None,
    ) -> BatchImportResult:
        return await self._import_movements(rows, actor, INBOUND_BATCH, self._apply_inbound_group, cancel)

    async def import_outbound(
        self,
        rows: Sequence[Mapping[str, Any]],
        actor: Actor,
        cancel: Optional[asyncio.Event] = None,
    ) -> BatchImportResult:
        return await self._import_movements(rows, actor, OUTBOUND_BATCH, self._apply_outbound_group, cancel)

    async def _import_movements(self, rows, actor: Actor, kind: _BatchKind, apply_group, cancel) -> BatchImportResult:
        run_token = uuid.uuid4().hex[:8]
        groups = group_rows(rows, kind.placeholder_prefix, run_token)
        result = BatchImportResult()

        logger.info(f"Bulk {kind.label.lower()} import {run_token}: {len(rows)} rows in {len(groups)} groups")

        for reference, group in groups.items():
            if cancel is not None and cancel.is_set():
                result.failed += 1
                result.errors.append(f"{kind.label} {reference}: cancelled")
                continue

            try:
                parsed = parse_group(group, kind.row_model)
                movement_id = await self._run_group(reference, parsed, actor, apply_group)
            except StockMovementError as e:
                message = str(e)
            except Exception as e:
                logger.exception(f"Unexpected error importing {kind.label.lower()} {reference}")
                message = f"Unexpected error ({type(e).__name__})"
            else:
                result.success += 1
                result.movement_ids.append(movement_id)
                continue

            logger.warning(f"Bulk {kind.label.lower()} {reference} failed: {message}")
            result.failed += 1
            result.errors.append(f"{kind.label} {reference}: {message}")

        logger.info(
            f"Bulk {kind.label.lower()} import {run_token} complete: "
            f"{result.success} succeeded, {result.failed} failed"
        )
        return result

    async def _run_group(self, reference: str, parsed: list, actor: Actor, apply_group) -> int:
        """One group, one transaction."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    return await apply_group(session, reference, parsed, actor)
        except SQLAlchemyError as e:
            logger.error(f"Group {reference} failed in storage: {type(e).__name__}: {e}")
            raise PersistenceError() from e

    async def _apply_inbound_group(self, session: AsyncSession, reference: str, rows: list, actor: Actor) -> int:
        first = rows[0]
        warehouse = await self._resolve_warehouse(session, first.warehouse)
        supplier = await self._resolve_or_create(session, Supplier, first.supplier or "Unknown Supplier", "Imported")
        products = await self._resolve_skus(session, [row.sku for row in rows])

        command = InboundCommand(
            warehouse_id=warehouse.id,
            reference=reference,
            supplier_id=supplier.id,
            movement_date=first.date,
            items=[
                MovementLineIn(product_id=products[row.sku].id, quantity=row.quantity, unit_cost=row.cost)
                for row in rows
            ],
        )
        result = await self.executor.apply_inbound(
            session,
            command,
            actor,
            action=AuditAction.BULK_INBOUND,
            detail=f"Bulk imported {reference} ({len(rows)} items)",
        )

        # Last import wins: a positive cost becomes the product's cost price
        if settings.IMPORT_UPDATES_COST_PRICE:
            for row in rows:
                if row.cost is not None and row.cost > 0:
                    products[row.sku].cost_price = row.cost

        return result.movement_id

    async def _apply_outbound_group(self, session: AsyncSession, reference: str, rows: list, actor: Actor) -> int:
        first = rows[0]
        warehouse = await self._resolve_warehouse(session, first.warehouse)
        customer = await self._resolve_or_create(
            session, Customer, first.customer or "Walk-in Customer", "Imported via CSV"
        )
        products = await self._resolve_skus(session, [row.sku for row in rows])

        command = OutboundCommand(
            warehouse_id=warehouse.id,
            reference=reference,
            customer_id=customer.id,
            movement_date=first.date,
            items=[
                MovementLineIn(product_id=products[row.sku].id, quantity=row.quantity, unit_price=row.price)
                for row in rows
            ],
        )
        result = await self.executor.apply_outbound(
            session,
            command,
            actor,
            action=AuditAction.BULK_OUTBOUND,
            detail=f"Bulk shipped {reference} ({len(rows)} items)",
        )
        return result.movement_id

    # ------------------------------------------------------------------
    # Natural key resolution
    # ------------------------------------------------------------------

    @staticmethod
    async def _resolve_warehouse(session: AsyncSession, name: str) -> Warehouse:
        result = await session.execute(
            select(Warehouse)
            .where(func.lower(Warehouse.name) == name.strip().lower())
            .order_by(Warehouse.id)
            .limit(1)
        )
        warehouse = result.scalar_one_or_none()
        if warehouse is None:
            raise ReferenceResolutionError(f"Warehouse '{name}' not found")
        return warehouse

    @staticmethod
    async def _resolve_or_create(session: AsyncSession, model, name: str, placeholder_contact: str):
        """Find a supplier/customer by name, creating it when unknown."""
        result = await session.execute(
            select(model).where(func.lower(model.name) == name.strip().lower()).order_by(model.id).limit(1)
        )
        party = result.scalar_one_or_none()
        if party is None:
            party = model(name=name.strip(), contact=placeholder_contact)
            session.add(party)
            await session.flush()
            logger.info(f"Created {model.__name__.lower()} '{party.name}' during import")
        return party

    @staticmethod
    async def _resolve_skus(session: AsyncSession, skus: list[str]) -> dict[str, Product]:
        wanted = set(skus)
        result = await session.execute(
            select(Product).where(Product.sku.in_(wanted)).options(raiseload(Product.stock_levels))
        )
        products = {product.sku: product for product in result.scalars().all()}
        missing = [sku for sku in dict.fromkeys(skus) if sku not in products]
        if missing:
            raise ReferenceResolutionError("; ".join(f"SKU '{sku}' not found" for sku in missing))
        return products

    # ------------------------------------------------------------------
    # Product catalog import
    # ------------------------------------------------------------------

    async def import_products(self, rows: Sequence[Mapping[str, Any]], actor: Actor) -> BatchImportResult:
        """Create one product per row; a failing row does not affect the others."""
        catalog = CatalogService(self.session_factory)
        result = BatchImportResult()

        for row_num, raw in enumerate(rows, start=1):
            row = normalize_row(raw)
            label = str(row.get("sku") or f"Row {row_num}").strip()
            try:
                parsed = BulkProductRow.model_validate(row)
                data = ProductCreate(
                    sku=parsed.sku,
                    name=parsed.name,
                    description=parsed.description,
                    category=parsed.category,
                    price=parsed.price or 0.0,
                    cost_price=parsed.cost_price or 0.0,
                    min_stock=parsed.min_stock,
                    stock_level=parsed.stock_level or 0,
                )
                await catalog.create_product(data, actor, action=AuditAction.BULK_IMPORT)
            except ValidationError as e:
                message = format_validation_error(row_num, e)
            except (CatalogError, StockMovementError) as e:
                message = str(e)
            except Exception as e:
                logger.exception(f"Unexpected error importing product row {row_num}")
                message = f"Unexpected error ({type(e).__name__})"
            else:
                result.success += 1
                continue

            logger.warning(f"Product import row {row_num} failed: {message}")
            result.failed += 1
            result.errors.append(f"{label}: {message}")

        logger.info(f"Product import complete: {result.success} succeeded, {result.failed} failed")
        return result
