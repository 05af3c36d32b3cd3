"""
Request correlation for log lines and problem responses.

Every request carries two IDs through context variables:
- X-Correlation-ID: client-chosen, shared by all calls of one client workflow
  (e.g. a CSV upload followed by its template download and history checks)
- X-Request-ID: unique per call; it becomes the trace_id of error responses

Both are echoed back on the response.
"""

import uuid
import logging
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_HEADER = "X-Request-ID"
MAX_ID_LENGTH = 64

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def _clean(value: str | None) -> str | None:
    """Client-supplied IDs end up in logs: keep them short and printable."""
    if not value:
        return None
    value = value.strip()[:MAX_ID_LENGTH]
    return value if value.isprintable() and value else None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind correlation and request IDs for the duration of one request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = _clean(request.headers.get(CORRELATION_HEADER)) or generate_id()
        request_id = _clean(request.headers.get(REQUEST_HEADER)) or generate_id()

        # Not reset afterwards: the outermost 500 handler still reads them
        correlation_id_ctx.set(correlation_id)
        request_id_ctx.set(request_id)
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers[REQUEST_HEADER] = request_id
        return response


def get_correlation_id() -> str:
    return correlation_id_ctx.get() or "unknown"


def get_request_id() -> str:
    return request_id_ctx.get() or "unknown"


class CorrelationLogFilter(logging.Filter):
    """Adds correlation_id and request_id attributes to every record (for the log format)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.request_id = get_request_id()
        return True
