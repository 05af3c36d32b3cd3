from app.schemas.auth import (
    UserCreate,
    UserResponse,
    Token,
    TokenData,
    LoginRequest,
    RoleUpdate,
)
from app.schemas.inventory import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    StockLevelResponse,
    WarehouseCreate,
    WarehouseResponse,
    PartyCreate,
    PartyResponse,
    AuditEntryResponse,
)
from app.schemas.movement import (
    MovementLineIn,
    InboundCommand,
    OutboundCommand,
    TransferCommand,
    MovementCommand,
    MovementResult,
    MovementResponse,
    MovementListResponse,
    BulkInboundRow,
    BulkOutboundRow,
    BulkProductRow,
    BatchImportResult,
    BatchImportResponse,
)
