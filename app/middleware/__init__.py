from .correlation import CorrelationIdMiddleware, CorrelationLogFilter, get_request_id

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "get_request_id",
]
