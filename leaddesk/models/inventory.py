"""
Inventory model - stock lines imported from the warehouse spreadsheet.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class InventoryItem(SQLModel, table=True):
    """
    A product line. Quantities are kept as text because the source sheet
    mixes blanks, decimals and annotations.
    """
    __tablename__ = "inventory"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    product_heading: Optional[str] = Field(default=None, index=True)  # section header, e.g. "PARMA SPC"
    product: str = Field(index=True)
    boxes: Optional[str] = None
    sq_ft_per_box: Optional[str] = None
    total_sq_ft: Optional[str] = None
    notes: Optional[str] = None  # "(drop)", "discontinued", ...

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
