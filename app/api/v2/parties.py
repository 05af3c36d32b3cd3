"""Suppliers and customers - the counterparties of inbound and outbound movements."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
import logging

from app.api.deps import DbSession, CurrentUser, CurrentActor
from app.models.audit import AuditAction
from app.models.customer import Customer, Supplier
from app.schemas.inventory import PartyCreate, PartyResponse
from app.security.rbac import Permission, require_permission
from app.services.audit_recorder import AuditRecorder

logger = logging.getLogger(__name__)

supplier_router = APIRouter()
customer_router = APIRouter()


async def _create_party(db, model, data: PartyCreate, actor, action: AuditAction):
    party = model(name=data.name.strip(), contact=data.contact, email=data.email, address=data.address)
    db.add(party)
    await db.flush()
    await AuditRecorder(db).record(actor, action, model.__name__, party.id, f"Created {model.__name__.lower()} {party.name}")
    await db.commit()
    logger.info(f"{model.__name__} {party.id} '{party.name}' created by user {actor.user_id}")
    return PartyResponse.model_validate(party)


@supplier_router.get("", response_model=list[PartyResponse])
async def list_suppliers(db: DbSession, current_user: CurrentUser):
    result = await db.execute(select(Supplier).order_by(Supplier.name))
    return [PartyResponse.model_validate(s) for s in result.scalars().all()]


@supplier_router.post("", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    data: PartyCreate,
    db: DbSession,
    actor: CurrentActor,
    _: None = Depends(require_permission(Permission.MANAGE_PARTIES)),
):
    return await _create_party(db, Supplier, data, actor, AuditAction.SUPPLIER_CREATE)


@customer_router.get("", response_model=list[PartyResponse])
async def list_customers(db: DbSession, current_user: CurrentUser):
    result = await db.execute(select(Customer).order_by(Customer.name))
    return [PartyResponse.model_validate(c) for c in result.scalars().all()]


@customer_router.post("", response_model=PartyResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: PartyCreate,
    db: DbSession,
    actor: CurrentActor,
    _: None = Depends(require_permission(Permission.MANAGE_PARTIES)),
):
    return await _create_party(db, Customer, data, actor, AuditAction.CUSTOMER_CREATE)
