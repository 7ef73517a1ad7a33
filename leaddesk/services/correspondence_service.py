"""
Correspondence service - idempotent storage of emails exchanged with leads.
"""
import uuid
import logging
from typing import List, NamedTuple, Optional
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.exc import IntegrityError

from leaddesk.models.email import EmailMessage, Direction
from leaddesk.models.lead import Lead, LeadStatus
from leaddesk.repositories.email_repo import EmailRepository
from leaddesk.services.integrations.base import ThreadContext, SendResult
from leaddesk.services.mail_headers import InboundEmail
from leaddesk.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

NO_SUBJECT = "(No Subject)"


class RecordResult(NamedTuple):
    stored: bool
    email: EmailMessage


class CorrespondenceService:
    """
    Stores sent and received emails.

    A provider message id is stored at most once. Storing a received email
    moves its lead to Replied in the same commit, then raises a notification.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.email_repo = EmailRepository(session)
        self.notification_service = NotificationService(session)

    async def record_if_new(self, lead: Lead, email_data: dict) -> RecordResult:
        """Insert an email unless its provider message id is already stored."""
        message_id = email_data.get("message_id")
        if message_id:
            existing = await self.email_repo.get_by_message_id(message_id)
            if existing:
                return RecordResult(stored=False, email=existing)

        email = EmailMessage(lead_id=lead.id, **email_data)
        self.session.add(email)

        received = email.direction == Direction.RECEIVED
        if received:
            lead.status = LeadStatus.REPLIED
            lead.updated_at = datetime.utcnow()
            self.session.add(lead)

        try:
            await self.session.commit()
        except IntegrityError:
            # A concurrent sync stored the same message first
            await self.session.rollback()
            existing = await self.email_repo.get_by_message_id(message_id) if message_id else None
            if existing is None:
                raise
            logger.info(f"Email {message_id} stored concurrently, skipping")
            return RecordResult(stored=False, email=existing)

        await self.session.refresh(email)

        if received:
            await self.notification_service.create_for_email(lead, email)

        return RecordResult(stored=True, email=email)

    async def record_inbound(self, lead: Lead, inbound: InboundEmail) -> RecordResult:
        """Store a matched inbound email as a received row."""
        return await self.record_if_new(lead, {
            "direction": Direction.RECEIVED,
            "subject": inbound.subject or NO_SUBJECT,
            "body": inbound.body_text or "",
            "message_id": inbound.provider_message_id,
            "conversation_id": inbound.provider_thread_id,
            "message_id_header": inbound.message_id_header,
            "in_reply_to": inbound.in_reply_to_header,
            "references": inbound.references_header or inbound.in_reply_to_header,
            "from_email": inbound.sender_address,
            "to_email": inbound.to_address,
            "sent_at": inbound.received_at or datetime.utcnow()
        })

    async def record_sent(
        self,
        lead: Lead,
        subject: str,
        body: str,
        context: ThreadContext,
        result: SendResult,
        from_email: Optional[str] = None
    ) -> RecordResult:
        """Store an email the provider accepted. References are kept as sent."""
        return await self.record_if_new(lead, {
            "direction": Direction.SENT,
            "subject": subject or NO_SUBJECT,
            "body": body,
            "message_id": result.provider_message_id,
            "conversation_id": result.thread_id or context.thread_id,
            "message_id_header": result.message_id_header,
            "in_reply_to": context.in_reply_to,
            "references": context.references,
            "from_email": from_email,
            "to_email": lead.email,
            "sent_at": datetime.utcnow()
        })

    async def list_for_lead(self, lead_id: uuid.UUID) -> List[EmailMessage]:
        """All emails of a lead, newest first."""
        return await self.email_repo.list_by_lead(lead_id)
