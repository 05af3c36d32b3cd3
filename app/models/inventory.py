"""Product catalog and per-warehouse stock levels."""
from sqlalchemy import Column, String, DateTime, Text, Integer, Float, Boolean, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class Product(Base):
    """Stock-keeping unit. Archived rather than deleted; SKU never changes."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)

    # Item identification
    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, default="General", index=True)

    # Pricing
    price = Column(Float, nullable=False, default=0.0)  # Retail price
    cost_price = Column(Float, nullable=False, default=0.0)  # Purchase cost

    # Alert when total stock falls below this
    min_stock = Column(Integer, nullable=False, default=10)

    is_archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    stock_levels = relationship("StockLevel", back_populates="product", lazy="selectin")

    def __repr__(self):
        return f"<Product {self.sku} - {self.name}>"

    @property
    def total_stock(self) -> int:
        """Quantity on hand across all warehouses."""
        return sum(level.quantity or 0 for level in self.stock_levels)

    @property
    def needs_reorder(self) -> bool:
        return self.total_stock <= (self.min_stock or 0)


class StockLevel(Base):
    """Current quantity of one product at one warehouse."""

    __tablename__ = "stock_levels"
    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="uq_stock_levels_product_warehouse"),
        CheckConstraint("quantity >= 0", name="ck_stock_levels_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="stock_levels")
    warehouse = relationship("Warehouse", back_populates="stock_levels")

    def __repr__(self):
        return f"<StockLevel product={self.product_id} warehouse={self.warehouse_id} qty={self.quantity}>"
