"""Movement Validator - precondition checks for stock movements.

Pure functions: they never touch the database. Stock sufficiency is checked
against a quantity snapshot that the caller read (and locked) beforehand.
"""

from collections.abc import Collection, Mapping, Sequence
from typing import Optional

from app.schemas.movement import (
    InboundCommand,
    OutboundCommand,
    TransferCommand,
    MovementLineIn,
)
from app.services.movement_errors import InsufficientStockError, MovementValidationError


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_shape(lines: Sequence[MovementLineIn]) -> None:
    """Checks that need no database: non-empty, positive quantities, non-negative prices."""
    if not lines:
        raise MovementValidationError("Movement must contain at least one item")

    for number, line in enumerate(lines, start=1):
        if not _is_positive_int(line.quantity):
            raise MovementValidationError(
                f"Line {number}: quantity must be a positive integer (product ID {line.product_id}, got {line.quantity})",
                line=number,
                product_id=line.product_id,
            )
        if line.unit_cost is not None and line.unit_cost < 0:
            raise MovementValidationError(
                f"Line {number}: unit cost cannot be negative (product ID {line.product_id})",
                line=number,
                product_id=line.product_id,
            )
        if line.unit_price is not None and line.unit_price < 0:
            raise MovementValidationError(
                f"Line {number}: unit price cannot be negative (product ID {line.product_id})",
                line=number,
                product_id=line.product_id,
            )


def validate_lines(lines: Sequence[MovementLineIn], known_product_ids: Collection[int]) -> None:
    """Shape checks plus every line referencing a known product."""
    validate_shape(lines)
    for number, line in enumerate(lines, start=1):
        if line.product_id not in known_product_ids:
            raise MovementValidationError(
                f"Line {number}: unknown product ID {line.product_id}",
                line=number,
                product_id=line.product_id,
            )


def validate_inbound(command: InboundCommand, known_product_ids: Collection[int]) -> None:
    validate_lines(command.items, known_product_ids)


def validate_outbound(
    command: OutboundCommand,
    known_product_ids: Collection[int],
    available: Mapping[int, int],
    skus: Optional[Mapping[int, str]] = None,
) -> None:
    """Shape checks, then stock sufficiency line by line.

    A product listed on several lines must be covered by their combined
    quantity. The first line that cannot be satisfied is reported.
    """
    validate_lines(command.items, known_product_ids)

    demanded: dict[int, int] = {}
    for number, line in enumerate(command.items, start=1):
        demanded[line.product_id] = demanded.get(line.product_id, 0) + line.quantity
        on_hand = available.get(line.product_id, 0)
        if demanded[line.product_id] > on_hand:
            raise InsufficientStockError(
                product_id=line.product_id,
                warehouse_id=command.warehouse_id,
                requested=demanded[line.product_id],
                available=on_hand,
                sku=(skus or {}).get(line.product_id),
                line=number,
            )


def validate_transfer_shape(command: TransferCommand) -> None:
    if command.from_warehouse_id == command.to_warehouse_id:
        raise MovementValidationError("Source and destination warehouse must differ")
    if not _is_positive_int(command.quantity):
        raise MovementValidationError(
            f"Transfer quantity must be a positive integer, got {command.quantity}",
            product_id=command.product_id,
        )


def validate_transfer(
    command: TransferCommand,
    known_product_ids: Collection[int],
    available_at_source: int,
    sku: Optional[str] = None,
) -> None:
    validate_transfer_shape(command)
    if command.product_id not in known_product_ids:
        raise MovementValidationError(
            f"Unknown product ID {command.product_id}",
            product_id=command.product_id,
        )
    if command.quantity > available_at_source:
        raise InsufficientStockError(
            product_id=command.product_id,
            warehouse_id=command.from_warehouse_id,
            requested=command.quantity,
            available=available_at_source,
            sku=sku,
        )
