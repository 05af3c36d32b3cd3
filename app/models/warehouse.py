from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Warehouse(Base):
    """Physical stock location. Bulk imports match it by name, case-insensitively."""

    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    location = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    stock_levels = relationship("StockLevel", back_populates="warehouse")

    def __repr__(self):
        return f"<Warehouse {self.id} - {self.name}>"
