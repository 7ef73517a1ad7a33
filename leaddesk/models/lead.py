"""
Lead and Company models - the core CRM entities.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class Company(SQLModel, table=True):
    """
    Company a group of leads belongs to.
    Deleting a company detaches its leads instead of deleting them.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)


class Lead(SQLModel, table=True):
    """
    Lead entity - a prospective customer.
    The email address is what inbound replies are matched on when no
    thread history exists; duplicates are allowed.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: Optional[uuid.UUID] = Field(default=None, foreign_key="company.id", index=True)

    # Basic info
    client_name: str = Field(index=True)
    email: str = Field(index=True)
    phone: Optional[str] = None
    subject: Optional[str] = None
    lead_details: Optional[str] = None

    # Internal notes/comments for the lead
    notes: Optional[str] = None

    # Pipeline
    status: str = Field(default="New", index=True)  # see LeadStatus
    source: str = Field(default="manual", index=True)  # manual, import

    # Assignment
    assigned_to: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id", index=True)
    assigned_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    assigned_by: Optional[uuid.UUID] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)


# Status constants for consistency
class LeadStatus:
    NEW = "New"
    CONTACTED = "Contacted"
    REPLIED = "Replied"
    QUALIFIED = "Qualified"
    IN_PROGRESS = "In Progress"
    FOLLOW_UP = "Follow-up"
    CLOSED_WON = "Closed Won"
    CLOSED_LOST = "Closed Lost"
    CLOSED = "Closed"

    ALL = [
        NEW, CONTACTED, REPLIED, QUALIFIED, IN_PROGRESS,
        FOLLOW_UP, CLOSED_WON, CLOSED_LOST, CLOSED,
    ]
