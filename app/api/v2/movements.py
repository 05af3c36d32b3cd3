"""Movement history - inbound and outbound records, read only."""

from fastapi import APIRouter, Query
from sqlalchemy import select, func
from typing import Optional, Literal
import logging

from app.api.deps import DbSession, CurrentUser
from app.exceptions import NotFoundError
from app.models.movement import Movement
from app.schemas.movement import MovementResponse, MovementListResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=MovementListResponse)
async def list_movements(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    direction: Optional[Literal["IN", "OUT"]] = None,
    warehouse_id: Optional[int] = None,
    reference: Optional[str] = None,
):
    """List movements, newest first."""
    query = select(Movement)

    if direction:
        query = query.where(Movement.direction == direction)
    if warehouse_id is not None:
        query = query.where(Movement.warehouse_id == warehouse_id)
    if reference:
        query = query.where(Movement.reference == reference)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    offset = (page - 1) * page_size
    query = query.order_by(Movement.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)

    return MovementListResponse(
        items=[MovementResponse.model_validate(m) for m in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{movement_id}", response_model=MovementResponse)
async def get_movement(
    movement_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    movement = await db.get(Movement, movement_id)
    if movement is None:
        raise NotFoundError("Movement", movement_id)
    return MovementResponse.model_validate(movement)
