"""
Stock movement records.

Movements and transfers are written once, inside the same transaction that
changes stock_levels, and are never edited or deleted afterwards.
"""
import enum

from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class MovementDirection(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class Movement(Base):
    """Inbound receipt or outbound shipment header."""

    __tablename__ = "movements"

    id = Column(Integer, primary_key=True, index=True)
    direction = Column(String(3), nullable=False, index=True)
    # Business document number, not unique
    reference = Column(String(100), nullable=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)

    # Counterparty: supplier for IN, customer for OUT
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    destination = Column(String(255), nullable=True)

    movement_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    document_ref = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    lines = relationship(
        "MovementLine",
        back_populates="movement",
        lazy="selectin",
        order_by="MovementLine.id",
    )

    def __repr__(self):
        return f"<Movement {self.id} {self.direction} ref={self.reference}>"


class MovementLine(Base):
    __tablename__ = "movement_lines"

    id = Column(Integer, primary_key=True, index=True)
    movement_id = Column(Integer, ForeignKey("movements.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Float, nullable=True)  # IN
    unit_price = Column(Float, nullable=True)  # OUT

    movement = relationship("Movement", back_populates="lines")

    def __repr__(self):
        return f"<MovementLine movement={self.movement_id} product={self.product_id} qty={self.quantity}>"


class StockTransfer(Base):
    """One product quantity moved from one warehouse to another."""

    __tablename__ = "stock_transfers"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return (
            f"<StockTransfer {self.id} product={self.product_id} "
            f"{self.from_warehouse_id}->{self.to_warehouse_id} qty={self.quantity}>"
        )
