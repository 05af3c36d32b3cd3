# Services module
from app.services.movement_errors import (
    StockMovementError,
    MovementValidationError,
    InsufficientStockError,
    ReferenceResolutionError,
    PersistenceError,
)
from app.services.audit_recorder import Actor, AuditRecorder, SYSTEM_ACTOR
from app.services.stock_store import StockStore
from app.services.movement_executor import MovementExecutor
from app.services.batch_importer import BatchImporter, ImportType, generate_csv_template
from app.services.catalog_service import CatalogService

__all__ = [
    "StockMovementError",
    "MovementValidationError",
    "InsufficientStockError",
    "ReferenceResolutionError",
    "PersistenceError",
    "Actor",
    "AuditRecorder",
    "SYSTEM_ACTOR",
    "StockStore",
    "MovementExecutor",
    "BatchImporter",
    "ImportType",
    "generate_csv_template",
    "CatalogService",
]
