"""
Email repository - lookups used for dedupe, threading and the lead timeline.
"""
import uuid
from typing import Optional, List
from datetime import datetime

from sqlmodel import select, col
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.models.email import EmailMessage, Direction
from leaddesk.models.notification import Notification
from leaddesk.repositories.base import BaseRepository


class EmailRepository(BaseRepository[EmailMessage]):
    """Repository for EmailMessage operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(EmailMessage, session)

    async def get_by_message_id(self, message_id: str) -> Optional[EmailMessage]:
        """Get an email by the provider's message id."""
        query = select(EmailMessage).where(EmailMessage.message_id == message_id)
        result = await self.session.exec(query)
        return result.first()

    async def get_by_thread_and_sender(
        self,
        conversation_id: str,
        from_email: str
    ) -> Optional[EmailMessage]:
        """Earliest stored email in a provider thread sent from the given address."""
        query = (
            select(EmailMessage)
            .where(
                EmailMessage.conversation_id == conversation_id,
                EmailMessage.from_email == from_email
            )
            .order_by(col(EmailMessage.sent_at))
        )
        result = await self.session.exec(query)
        return result.first()

    async def list_by_lead(self, lead_id: uuid.UUID) -> List[EmailMessage]:
        """All emails of a lead, newest first."""
        query = (
            select(EmailMessage)
            .where(EmailMessage.lead_id == lead_id)
            .order_by(col(EmailMessage.sent_at).desc())
        )
        result = await self.session.exec(query)
        return result.all()

    async def get_latest_for_lead(self, lead_id: uuid.UUID) -> Optional[EmailMessage]:
        """Most recent email of a lead in either direction."""
        query = (
            select(EmailMessage)
            .where(EmailMessage.lead_id == lead_id)
            .order_by(col(EmailMessage.sent_at).desc())
            .limit(1)
        )
        result = await self.session.exec(query)
        return result.first()

    async def list_received_without_notification(self, since: datetime) -> List[EmailMessage]:
        """Received emails newer than `since` that no notification points at."""
        query = (
            select(EmailMessage)
            .outerjoin(Notification, col(Notification.email_id) == col(EmailMessage.id))
            .where(
                EmailMessage.direction == Direction.RECEIVED,
                col(EmailMessage.sent_at) >= since,
                col(Notification.id).is_(None)
            )
            .order_by(col(EmailMessage.sent_at))
        )
        result = await self.session.exec(query)
        return result.all()

    async def delete_by_lead(self, lead_id: uuid.UUID) -> int:
        """Delete every email of a lead. Does not commit."""
        result = await self.session.exec(select(EmailMessage).where(EmailMessage.lead_id == lead_id))
        rows = result.all()
        for row in rows:
            await self.session.delete(row)
        return len(rows)
