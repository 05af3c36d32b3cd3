"""Errors raised by the stock movement services.

The exception handlers in app.exceptions turn these into RFC 7807 responses;
the batch importer records them per group instead of raising.
"""

from typing import Optional


class StockMovementError(Exception):
    """Base class for stock movement failures."""

    pass


class MovementValidationError(StockMovementError):
    """Malformed or incomplete request; raised before any mutation."""

    def __init__(self, message: str, line: Optional[int] = None, product_id: Optional[int] = None):
        self.line = line
        self.product_id = product_id
        super().__init__(message)


class InsufficientStockError(StockMovementError):
    """A decrement would drive a stock level below zero."""

    def __init__(
        self,
        product_id: int,
        warehouse_id: int,
        requested: int,
        available: int,
        sku: Optional[str] = None,
        line: Optional[int] = None,
    ):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.requested = requested
        self.available = available
        self.sku = sku
        self.line = line
        label = f"SKU '{sku}'" if sku else f"Product ID {product_id}"
        where = f" (line {line})" if line else ""
        super().__init__(
            f"Insufficient stock for {label}{where} in warehouse #{warehouse_id}. "
            f"Requested: {requested}, Available: {available}"
        )


class ReferenceResolutionError(StockMovementError):
    """A warehouse, product or counterparty named by natural key does not exist."""

    pass


class PersistenceError(StockMovementError):
    """Storage failure; the unit of work was rolled back."""

    def __init__(self, message: str = "Stock movement could not be saved"):
        super().__init__(message)
