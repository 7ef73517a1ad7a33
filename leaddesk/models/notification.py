"""
Notification model - in-app marker for a reply received from a lead.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class Notification(SQLModel, table=True):
    """
    One record per matched inbound email.
    The feed aggregates active records per lead; dismissed records are
    purged after the retention window.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", index=True)
    email_id: Optional[uuid.UUID] = Field(default=None, foreign_key="email.id", index=True)

    # Denormalized for display
    lead_name: str
    from_email: str
    subject: str

    dismissed: bool = Field(default=False, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True, sa_type=DateTime)
    dismissed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
