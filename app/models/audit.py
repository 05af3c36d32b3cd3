"""
Audit Log - one row per state-changing action.

Rows are only ever inserted; nothing in the application updates or deletes them.
"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class AuditAction(str, enum.Enum):
    PRODUCT_CREATE = "PRODUCT_CREATE"
    PRODUCT_UPDATE = "PRODUCT_UPDATE"
    PRODUCT_ARCHIVE = "PRODUCT_ARCHIVE"
    BULK_IMPORT = "BULK_IMPORT"
    INBOUND = "INBOUND"
    BULK_INBOUND = "BULK_INBOUND"
    OUTBOUND_SHIPPED = "OUTBOUND_SHIPPED"
    BULK_OUTBOUND = "BULK_OUTBOUND"
    TRANSFER = "TRANSFER"
    WAREHOUSE_CREATE = "WAREHOUSE_CREATE"
    SUPPLIER_CREATE = "SUPPLIER_CREATE"
    CUSTOMER_CREATE = "CUSTOMER_CREATE"
    USER_ROLE_UPDATE = "USER_ROLE_UPDATE"


class AuditEntry(Base):
    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True, index=True)

    # Who did it (NULL = system)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # What happened
    action = Column(String(30), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)  # Product, Inbound, Outbound, Inventory, ...
    entity_id = Column(Integer, nullable=True)
    detail = Column(Text, nullable=True)  # Human-readable summary

    # When
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    user = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<AuditEntry {self.action} on {self.entity_type}#{self.entity_id}>"
