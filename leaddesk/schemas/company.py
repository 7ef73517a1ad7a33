"""
Company schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class CompanyCreate(BaseModel):
    name: str


class CompanyUpdate(BaseModel):
    name: Optional[str] = None


class CompanyResponse(BaseModel):
    """Company with the number of leads attached to it."""
    id: uuid.UUID
    name: str
    lead_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
