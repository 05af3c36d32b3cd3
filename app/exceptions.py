"""
RFC 7807 Problem Details exception handling.

Every error leaves the API as application/problem+json with a machine-readable
code. Domain errors raised by the services (stock movements, catalog) are
translated here, so routers let them propagate.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from datetime import datetime, timezone

from app.config import settings
from app.middleware.correlation import generate_id, get_request_id
from app.services.catalog_service import CatalogError, DuplicateSkuError, ProductNotFoundError
from app.services.movement_errors import (
    StockMovementError,
    MovementValidationError,
    InsufficientStockError,
    ReferenceResolutionError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://api.warehouse.local/problems"

STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _get_trace_id() -> str:
    """The request ID when inside a request, otherwise a fresh one."""
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return generate_id()


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ErrorCode(str, Enum):
    """Error codes clients can switch on."""

    # Authentication & Authorization
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    VALIDATION_ERROR = "VAL_001"

    # Resource
    NOT_FOUND = "RES_001"
    ALREADY_EXISTS = "RES_002"
    CONFLICT = "RES_003"

    INSUFFICIENT_STOCK = "BIZ_004"

    DATABASE_ERROR = "EXT_004"

    # Server
    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


class ProblemDetail(BaseModel):
    """
    RFC 7807 body.

    `errors` carries per-field problems for request validation, and the
    offending line (requested/available quantities included) for rejected
    stock movements.
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str = Field(description="Request ID, also sent as X-Request-ID")
    errors: Optional[List[Dict[str, Any]]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "https://api.warehouse.local/problems/biz-004",
                "title": "Conflict",
                "status": 409,
                "detail": "Insufficient stock for SKU 'WID-1' (line 1) in warehouse #1. Requested: 80, Available: 70",
                "instance": "/api/v2/outbound",
                "code": "BIZ_004",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456",
                "errors": [{"product_id": 1, "warehouse_id": 1, "requested": 80, "available": 70, "line": 1}],
            }
        }
    }


def _problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_BASE_URL}/{code.value.lower().replace('_', '-')}"


def build_problem(
    status_code: int,
    code: ErrorCode,
    detail: str,
    instance: Optional[str] = None,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
) -> ProblemDetail:
    return ProblemDetail(
        type=_problem_type(code),
        title=STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        instance=instance,
        code=code.value,
        timestamp=_timestamp(),
        trace_id=trace_id or _get_trace_id(),
        errors=errors,
    )


class WarehouseAPIException(HTTPException):
    """
    HTTP error raised by the routers themselves.

    Usage:
        raise WarehouseAPIException(404, ErrorCode.NOT_FOUND, "Warehouse with ID 3 was not found")
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code
        self.errors = errors

    def to_problem_detail(self, path: Optional[str] = None) -> ProblemDetail:
        return build_problem(self.status_code, self.code, self.detail, instance=path, errors=self.errors)


class NotFoundError(WarehouseAPIException):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(404, ErrorCode.NOT_FOUND, f"{resource} with ID {resource_id} was not found")


class UnauthorizedError(WarehouseAPIException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(401, ErrorCode.UNAUTHORIZED, detail, headers={"WWW-Authenticate": "Bearer"})


class ConflictError(WarehouseAPIException):
    def __init__(self, detail: str, code: ErrorCode = ErrorCode.CONFLICT):
        super().__init__(409, code, detail)


# Plain HTTPException status -> code, for errors raised by FastAPI itself or by dependencies
HTTP_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def translate_domain_error(exc: Exception) -> tuple[int, ErrorCode]:
    """HTTP status and error code for a service-layer error."""
    if isinstance(exc, InsufficientStockError):
        return 409, ErrorCode.INSUFFICIENT_STOCK
    if isinstance(exc, MovementValidationError):
        return 422, ErrorCode.VALIDATION_ERROR
    if isinstance(exc, (ReferenceResolutionError, ProductNotFoundError)):
        return 404, ErrorCode.NOT_FOUND
    if isinstance(exc, DuplicateSkuError):
        return 409, ErrorCode.ALREADY_EXISTS
    if isinstance(exc, PersistenceError):
        return 503, ErrorCode.DATABASE_ERROR
    return 500, ErrorCode.INTERNAL_ERROR


def _domain_error_lines(exc: Exception) -> Optional[List[Dict[str, Any]]]:
    if isinstance(exc, InsufficientStockError):
        return [{
            "product_id": exc.product_id,
            "warehouse_id": exc.warehouse_id,
            "requested": exc.requested,
            "available": exc.available,
            "line": exc.line,
        }]
    if isinstance(exc, MovementValidationError) and exc.line is not None:
        return [{"line": exc.line, "product_id": exc.product_id, "message": str(exc)}]
    return None


def _add_cors_headers(response: JSONResponse, request: Request, allowed_origins: Optional[List[str]]) -> None:
    # Responses from the outermost Exception handler skip CORSMiddleware
    origin = request.headers.get("origin", "")
    if allowed_origins and origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"


def create_problem_response(
    problem: ProblemDetail,
    request: Request,
    allowed_origins: Optional[List[str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Serialize a problem as application/problem+json."""
    response = JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )
    _add_cors_headers(response, request, allowed_origins)
    return response


def create_exception_handlers(allowed_origins: List[str]):
    """
    Handlers keyed by kind; main.py registers them:

        handlers = create_exception_handlers(allowed_origins)
        app.add_exception_handler(WarehouseAPIException, handlers["api"])
        for error in DOMAIN_ERRORS:
            app.add_exception_handler(error, handlers["domain"])
    """

    def respond(request: Request, problem: ProblemDetail, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
        return create_problem_response(problem, request, allowed_origins, headers)

    async def handle_api_exception(request: Request, exc: WarehouseAPIException) -> JSONResponse:
        problem = exc.to_problem_detail(request.url.path)
        logger.warning(f"API error {problem.code} on {request.url.path}: {exc.detail}")
        return respond(request, problem, exc.headers)

    async def handle_domain_exception(request: Request, exc: Exception) -> JSONResponse:
        status_code, code = translate_domain_error(exc)
        problem = build_problem(
            status_code, code, str(exc), instance=request.url.path, errors=_domain_error_lines(exc)
        )
        log = logger.error if status_code >= 500 else logger.info
        log(f"{type(exc).__name__} on {request.url.path}: {exc}")
        return respond(request, problem)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        problem = build_problem(exc.status_code, code, str(exc.detail), instance=request.url.path)
        return respond(request, problem, getattr(exc, "headers", None))

    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Field-level details from pydantic, one entry per failing location."""
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        problem = build_problem(
            422, ErrorCode.VALIDATION_ERROR, "Request validation failed", instance=request.url.path, errors=errors
        )
        return respond(request, problem)

    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled {type(exc).__name__} on {request.url.path}")
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"
        problem = build_problem(500, ErrorCode.INTERNAL_ERROR, detail, instance=request.url.path)
        return respond(request, problem)

    return {
        "api": handle_api_exception,
        "domain": handle_domain_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "generic": handle_generic_exception,
    }


DOMAIN_ERRORS = (StockMovementError, CatalogError)
