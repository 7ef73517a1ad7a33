"""
Lead schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, EmailStr, field_validator

from leaddesk.models.lead import LeadStatus


class LeadCreate(BaseModel):
    """Create a new lead."""
    client_name: str
    email: EmailStr
    phone: Optional[str] = None
    subject: Optional[str] = None
    lead_details: Optional[str] = None
    notes: Optional[str] = None
    company_id: Optional[uuid.UUID] = None

    class Config:
        json_schema_extra = {
            "example": {
                "client_name": "Jane Doe",
                "email": "jane@acme.com",
                "subject": "Flooring quote",
                "lead_details": "Needs 1,200 sq ft of SPC for a retail fit-out"
            }
        }


class LeadUpdate(BaseModel):
    """Update an existing lead."""
    client_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    subject: Optional[str] = None
    lead_details: Optional[str] = None
    notes: Optional[str] = None
    company_id: Optional[uuid.UUID] = None


class LeadStatusUpdate(BaseModel):
    """Move a lead through the pipeline."""
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        if v not in LeadStatus.ALL:
            raise ValueError(f"status must be one of: {', '.join(LeadStatus.ALL)}")
        return v


class LeadAssignRequest(BaseModel):
    """Assign a lead to a user; null unassigns."""
    user_id: Optional[uuid.UUID] = None


class LeadResponse(BaseModel):
    """Lead response."""
    id: uuid.UUID
    company_id: Optional[uuid.UUID]
    client_name: str
    email: str
    phone: Optional[str]
    subject: Optional[str]
    lead_details: Optional[str]
    notes: Optional[str]
    status: str
    source: str
    assigned_to: Optional[uuid.UUID]
    assigned_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadFilter(BaseModel):
    """Lead filtering options."""
    status: Optional[str] = None
    company_id: Optional[uuid.UUID] = None
    assigned_to: Optional[uuid.UUID] = None
    search: Optional[str] = None  # Search in client name, email, subject


class LeadImportResponse(BaseModel):
    """Spreadsheet import result."""
    total_rows: int
    imported: int
    failed: int
    errors: List[dict]


class LeadBulkDeleteRequest(BaseModel):
    """Bulk delete leads."""
    lead_ids: List[uuid.UUID]
