"""
Email correspondence model.
One row per message sent to or received from a lead, carrying the
identifiers needed to thread future messages.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class EmailMessage(SQLModel, table=True):
    """
    A unit of correspondence owned by a lead.
    Rows are never mutated after creation; they go away with their lead.
    """
    __tablename__ = "email"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", index=True)

    direction: str = Field(index=True)  # sent, received
    subject: str
    body: str

    # Provider identifiers
    message_id: Optional[str] = Field(default=None, unique=True, index=True)  # provider's own id, dedupe key
    conversation_id: Optional[str] = Field(default=None, index=True)  # provider thread/conversation id

    # RFC 5322 threading headers
    message_id_header: Optional[str] = None
    in_reply_to: Optional[str] = None
    references: Optional[str] = None  # space-separated, oldest first

    from_email: Optional[str] = Field(default=None, index=True)
    to_email: Optional[str] = None

    sent_at: datetime = Field(default_factory=datetime.utcnow, index=True, sa_type=DateTime)


class Direction:
    SENT = "sent"
    RECEIVED = "received"
