from app.models.user import User
from app.models.warehouse import Warehouse
from app.models.customer import Customer, Supplier
from app.models.inventory import Product, StockLevel
from app.models.movement import Movement, MovementLine, MovementDirection, StockTransfer
from app.models.audit import AuditEntry, AuditAction

__all__ = [
    "User",
    "Warehouse",
    "Customer",
    "Supplier",
    "Product",
    "StockLevel",
    "Movement",
    "MovementLine",
    "MovementDirection",
    "StockTransfer",
    "AuditEntry",
    "AuditAction",
]
