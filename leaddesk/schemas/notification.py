"""
Notification schemas.
"""
import uuid
from typing import List
from datetime import datetime
from pydantic import BaseModel


class LeadNotificationGroup(BaseModel):
    """Active notifications of one lead, collapsed for the feed."""
    lead_id: uuid.UUID
    lead_name: str
    from_email: str
    subject: str  # latest
    count: int
    notification_ids: List[uuid.UUID]
    latest_at: datetime


class DismissResponse(BaseModel):
    dismissed: int
