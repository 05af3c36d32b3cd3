"""
Warehouse Inventory API - application factory wiring.

Routers live under /api/v2. Errors leave as RFC 7807 problem+json, and every
log line carries the request ID of the call that produced it.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.api.deps import DbSession
from app.api.v2.router import api_router
from app.config import settings
from app.database import init_db
from app.exceptions import DOMAIN_ERRORS, WarehouseAPIException, create_exception_handlers
from app.middleware.correlation import CorrelationIdMiddleware, CorrelationLogFilter
# Registers every table on Base.metadata before init_db()
from app import models  # noqa: F401

API_VERSION = "1.0.0"


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationLogFilter())
    # SQL statements are echoed by the engine itself when enabled
    logging.getLogger("sqlalchemy.engine").propagate = not settings.sqlalchemy_echo


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Warehouse Inventory API ({settings.ENVIRONMENT})")
    # Only the driver: the URL may hold credentials
    logger.info(f"Database driver: {settings.DATABASE_URL.split('://', 1)[0]}")
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {type(e).__name__}")
        raise
    yield
    logger.info("Shutting down Warehouse Inventory API")


app = FastAPI(
    title="Warehouse Inventory API",
    description="Stock movements, bulk imports and audit trail for multi-warehouse inventory",
    version=API_VERSION,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    lifespan=lifespan,
)

allowed_origins = [settings.FRONTEND_URL]
if not settings.is_production:
    allowed_origins.extend([
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
    ])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Correlation-ID"],
)
app.add_middleware(CorrelationIdMiddleware)

handlers = create_exception_handlers(allowed_origins)
app.add_exception_handler(WarehouseAPIException, handlers["api"])
for _error in DOMAIN_ERRORS:
    app.add_exception_handler(_error, handlers["domain"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(Exception, handlers["generic"])

app.include_router(api_router, prefix="/api/v2")


@app.get("/")
async def root():
    response = {
        "name": "Warehouse Inventory API",
        "version": API_VERSION,
        "health": "/health",
    }
    if settings.docs_enabled:
        response["docs"] = "/docs"
    return response


@app.get("/health")
async def health_check(db: DbSession):
    """Liveness plus a round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning(f"Health check database probe failed: {type(e).__name__}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "version": API_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=5001,
        reload=settings.DEBUG,
    )
