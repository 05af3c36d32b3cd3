from fastapi import APIRouter
from app.api.v2 import (
    auth,
    users,
    inbound,
    outbound,
    inventory,
    movements,
    products,
    import_data,
    warehouses,
    parties,
    audit,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(inbound.router, prefix="/inbound", tags=["inbound"])
api_router.include_router(outbound.router, prefix="/outbound", tags=["outbound"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(movements.router, prefix="/movements", tags=["movements"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(import_data.router, prefix="/import", tags=["import"])
api_router.include_router(warehouses.router, prefix="/warehouses", tags=["warehouses"])
api_router.include_router(parties.supplier_router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(parties.customer_router, prefix="/customers", tags=["customers"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
