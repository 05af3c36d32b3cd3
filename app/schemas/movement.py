"""Stock movement schemas: commands, bulk import rows and results."""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MovementLineIn(BaseModel):
    """One product line of an inbound or outbound request.

    Quantities and prices are range-checked by the movement validator, not here,
    so every rejection carries the offending line number.
    """

    product_id: int
    quantity: int
    unit_cost: Optional[float] = None
    unit_price: Optional[float] = None


class InboundCommand(BaseModel):
    kind: Literal["inbound"] = "inbound"
    warehouse_id: int
    reference: Optional[str] = Field(None, max_length=100)
    supplier_id: Optional[int] = None
    movement_date: Optional[datetime] = None
    document_ref: Optional[str] = None
    items: list[MovementLineIn] = Field(default_factory=list)


class OutboundCommand(BaseModel):
    kind: Literal["outbound"] = "outbound"
    warehouse_id: int
    reference: Optional[str] = Field(None, max_length=100)
    customer_id: Optional[int] = None
    destination: Optional[str] = Field(None, max_length=255)
    movement_date: Optional[datetime] = None
    document_ref: Optional[str] = None
    items: list[MovementLineIn] = Field(default_factory=list)


class TransferCommand(BaseModel):
    kind: Literal["transfer"] = "transfer"
    product_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    quantity: int


MovementCommand = Annotated[
    Union[InboundCommand, OutboundCommand, TransferCommand],
    Field(discriminator="kind"),
]


class MovementResult(BaseModel):
    """Outcome of one committed movement."""

    kind: str
    movement_id: Optional[int] = None
    transfer_id: Optional[int] = None
    reference: Optional[str] = None
    line_count: int
    audit_entry_id: int


class MovementLineResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_cost: Optional[float] = None
    unit_price: Optional[float] = None

    class Config:
        from_attributes = True


class MovementResponse(BaseModel):
    id: int
    direction: str
    reference: Optional[str] = None
    warehouse_id: int
    supplier_id: Optional[int] = None
    customer_id: Optional[int] = None
    destination: Optional[str] = None
    movement_date: Optional[datetime] = None
    document_ref: Optional[str] = None
    created_by: Optional[int] = None
    lines: list[MovementLineResponse]

    class Config:
        from_attributes = True


class MovementListResponse(BaseModel):
    items: list[MovementResponse]
    total: int
    page: int
    page_size: int


# ========================
# Bulk import rows
# ========================


class _ImportRow(BaseModel):
    """Row already split into columns by an external CSV parser."""

    # Spreadsheet exports send numeric SKUs and references as numbers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    reference: Optional[str] = None
    warehouse: str
    date: Optional[datetime] = None
    sku: str
    quantity: int

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class BulkInboundRow(_ImportRow):
    supplier: Optional[str] = None
    cost: Optional[float] = None


class BulkOutboundRow(_ImportRow):
    customer: Optional[str] = None
    price: Optional[float] = None


class BulkProductRow(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    sku: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    cost_price: Optional[float] = None
    min_stock: Optional[int] = None
    stock_level: Optional[int] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class BatchImportResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    movement_ids: list[int] = Field(default_factory=list)


class BatchImportResponse(BaseModel):
    message: str
    results: BatchImportResult
