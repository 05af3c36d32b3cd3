"""Inbound API - receive goods into a warehouse, one shipment or many."""

from typing import Any

from fastapi import APIRouter, Depends, status
import logging

from app.api.deps import CurrentActor, Executor, Importer
from app.schemas.movement import InboundCommand, MovementResult, BatchImportResponse
from app.security.rbac import Permission, require_permission

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=MovementResult, status_code=status.HTTP_201_CREATED)
async def create_inbound(
    command: InboundCommand,
    actor: CurrentActor,
    executor: Executor,
    _: None = Depends(require_permission(Permission.RECEIVE_STOCK)),
):
    """Receive one shipment. Stock, movement record and audit entry commit together."""
    return await executor.receive(command, actor)


@router.post("/bulk", response_model=BatchImportResponse)
async def create_bulk_inbound(
    rows: list[dict[str, Any]],
    actor: CurrentActor,
    importer: Importer,
    _: None = Depends(require_permission(Permission.RECEIVE_STOCK)),
):
    """Import parsed CSV rows, one movement per invoice reference.

    A failing invoice is reported in the results and does not stop the others.
    """
    results = await importer.import_inbound(rows, actor)
    return BatchImportResponse(message="Bulk import processed", results=results)
