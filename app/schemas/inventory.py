"""Catalog schemas: products, warehouses, counterparties, stock levels and audit entries."""

from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class ProductBase(BaseModel):
    """Base product schema."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    price: float = Field(0.0, ge=0)
    cost_price: float = Field(0.0, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)


class ProductCreate(ProductBase):
    """Schema for creating a product, optionally with opening stock in the default warehouse."""

    sku: str = Field(..., min_length=1, max_length=50)
    stock_level: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    """Schema for updating a product (all fields optional, SKU is immutable)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)

    @field_validator("name", "price", "cost_price", "min_stock")
    @classmethod
    def not_null(cls, v, info):
        # Omit the field to leave it unchanged; null would clear a required column
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class StockLocationResponse(BaseModel):
    warehouse_id: int
    warehouse_name: Optional[str] = None
    quantity: int


class ProductResponse(BaseModel):
    """Schema for product response."""

    id: int
    sku: str
    name: str
    description: Optional[str] = None
    category: str
    price: float
    cost_price: float
    min_stock: int
    is_archived: bool
    stock_level: int  # Computed: sum over warehouses
    needs_reorder: bool  # Computed: stock_level <= min_stock
    locations: list[StockLocationResponse] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StockLevelResponse(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int
    sku: Optional[str] = None
    product_name: Optional[str] = None


class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)


class WarehouseResponse(BaseModel):
    id: int
    name: str
    location: Optional[str] = None
    total_units: int = 0
    inventory: list[StockLevelResponse] = Field(default_factory=list)


class PartyCreate(BaseModel):
    """Supplier or customer."""

    name: str = Field(..., min_length=1, max_length=255)
    contact: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None


class PartyResponse(PartyCreate):
    id: int

    class Config:
        from_attributes = True


class AuditEntryResponse(BaseModel):
    id: int
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    detail: Optional[str] = None
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    created_at: Optional[str] = None
