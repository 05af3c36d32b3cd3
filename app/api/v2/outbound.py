"""Outbound API - ship goods out of a warehouse."""

from typing import Any

from fastapi import APIRouter, Depends, status
import logging

from app.api.deps import CurrentActor, Executor, Importer
from app.schemas.movement import OutboundCommand, MovementResult, BatchImportResponse
from app.security.rbac import Permission, require_permission

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=MovementResult, status_code=status.HTTP_201_CREATED)
async def create_outbound(
    command: OutboundCommand,
    actor: CurrentActor,
    executor: Executor,
    _: None = Depends(require_permission(Permission.SHIP_STOCK)),
):
    """Ship one order. Fails as a whole when any line lacks stock."""
    return await executor.ship(command, actor)


@router.post("/bulk", response_model=BatchImportResponse)
async def create_bulk_outbound(
    rows: list[dict[str, Any]],
    actor: CurrentActor,
    importer: Importer,
    _: None = Depends(require_permission(Permission.SHIP_STOCK)),
):
    results = await importer.import_outbound(rows, actor)
    return BatchImportResponse(message="Bulk outbound processed", results=results)
