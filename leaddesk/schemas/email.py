"""
Email correspondence schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel


class SendEmailRequest(BaseModel):
    """Send an email to a lead. Threads onto the latest stored message when one exists."""
    subject: Optional[str] = None
    body: str

    class Config:
        json_schema_extra = {
            "example": {
                "subject": "Your flooring quote",
                "body": "Hi Jane,\n\nPlease find the quote attached..."
            }
        }


class EmailResponse(BaseModel):
    """Stored email response."""
    id: uuid.UUID
    lead_id: uuid.UUID
    direction: str
    subject: str
    body: str
    message_id: Optional[str]
    conversation_id: Optional[str]
    message_id_header: Optional[str]
    in_reply_to: Optional[str]
    references: Optional[str]
    from_email: Optional[str]
    to_email: Optional[str]
    sent_at: datetime

    class Config:
        from_attributes = True


class SyncResponse(BaseModel):
    """Result of one inbox sync pass."""
    checked: int
    matched: int
    saved: int
    duplicates: int
    unmatched: int
    last_sync: datetime


class GenerateReplyRequest(BaseModel):
    """Ask the model for a reply draft."""
    lead_id: uuid.UUID
    current_draft: Optional[str] = None


class GenerateReplyResponse(BaseModel):
    subject: str
    body: str


class GrammarFixRequest(BaseModel):
    text: str


class GrammarFixResponse(BaseModel):
    text: str
    suggestions: List[str] = []


class EmailThreadResponse(BaseModel):
    """All emails exchanged with a lead, newest first."""
    lead_id: uuid.UUID
    emails: List[EmailResponse]
