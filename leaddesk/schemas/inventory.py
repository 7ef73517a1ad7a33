"""
Inventory schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel


class InventoryCreate(BaseModel):
    product: str
    product_heading: Optional[str] = None
    boxes: Optional[str] = None
    sq_ft_per_box: Optional[str] = None
    total_sq_ft: Optional[str] = None
    notes: Optional[str] = None


class InventoryUpdate(BaseModel):
    product: Optional[str] = None
    product_heading: Optional[str] = None
    boxes: Optional[str] = None
    sq_ft_per_box: Optional[str] = None
    total_sq_ft: Optional[str] = None
    notes: Optional[str] = None


class InventoryResponse(BaseModel):
    id: uuid.UUID
    product_heading: Optional[str]
    product: str
    boxes: Optional[str]
    sq_ft_per_box: Optional[str]
    total_sq_ft: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InventoryImportResponse(BaseModel):
    """Spreadsheet import result."""
    total_rows: int
    imported: int
    headings: int
    failed: int
    errors: List[dict]


class InventoryBulkDeleteRequest(BaseModel):
    item_ids: List[uuid.UUID]
