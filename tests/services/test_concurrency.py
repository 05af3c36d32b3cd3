"""
Concurrent movements against one (product, warehouse) key.

Each call runs in its own session and connection, as concurrent requests do.
"""
import asyncio

import pytest
from sqlalchemy import select, func

from app.models.audit import AuditEntry
from app.models.movement import Movement
from app.schemas.movement import InboundCommand, OutboundCommand, MovementLineIn
from app.services.movement_errors import InsufficientStockError
from app.services.movement_executor import MovementExecutor
from app.services.stock_store import StockStore


async def _quantity(session_factory, product_id, warehouse_id) -> int:
    async with session_factory() as session:
        return await StockStore(session).get(product_id, warehouse_id)


@pytest.mark.asyncio
async def test_concurrent_outbound_accepts_a_subset_that_fits(session_factory, actor, widget, main_warehouse):
    executor = MovementExecutor(session_factory)
    await executor.receive(
        InboundCommand(warehouse_id=main_warehouse.id, items=[MovementLineIn(product_id=widget.id, quantity=10)]),
        actor,
    )

    requests = [3, 4, 2, 5, 1, 6]

    async def ship(quantity):
        command = OutboundCommand(
            warehouse_id=main_warehouse.id,
            reference=f"SO-{quantity}",
            items=[MovementLineIn(product_id=widget.id, quantity=quantity)],
        )
        return await executor.ship(command, actor)

    outcomes = await asyncio.gather(*(ship(q) for q in requests), return_exceptions=True)

    accepted = [q for q, outcome in zip(requests, outcomes) if not isinstance(outcome, Exception)]
    rejected = [outcome for outcome in outcomes if isinstance(outcome, Exception)]

    assert all(isinstance(error, InsufficientStockError) for error in rejected)
    assert sum(accepted) <= 10
    assert await _quantity(session_factory, widget.id, main_warehouse.id) == 10 - sum(accepted)

    async with session_factory() as session:
        outbound_count = (
            await session.execute(select(func.count()).select_from(Movement).where(Movement.direction == "OUT"))
        ).scalar()
        audit_count = (await session.execute(select(func.count()).select_from(AuditEntry))).scalar()
    assert outbound_count == len(accepted)
    assert audit_count == 1 + len(accepted)


@pytest.mark.asyncio
async def test_concurrent_inbound_sums_exactly(session_factory, actor, widget, main_warehouse):
    """First-time receipts racing on a new key must not lose updates."""
    executor = MovementExecutor(session_factory)
    quantities = [1, 2, 3, 4, 5, 6, 7, 8]

    await asyncio.gather(*(
        executor.receive(
            InboundCommand(warehouse_id=main_warehouse.id, items=[MovementLineIn(product_id=widget.id, quantity=q)]),
            actor,
        )
        for q in quantities
    ))

    assert await _quantity(session_factory, widget.id, main_warehouse.id) == sum(quantities)
