"""
Notification service - reply notifications for the in-app feed.
"""
import uuid
import logging
from typing import Optional, List
from datetime import datetime, timedelta

from sqlmodel import select, col
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from leaddesk.core.exceptions import raise_not_found
from leaddesk.models.email import EmailMessage
from leaddesk.models.lead import Lead
from leaddesk.models.notification import Notification
from leaddesk.models.user import User
from leaddesk.repositories.email_repo import EmailRepository
from leaddesk.repositories.lead_repo import LeadRepository
from leaddesk.repositories.notification_repo import NotificationRepository
from leaddesk.schemas.notification import LeadNotificationGroup

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for notification operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.notification_repo = NotificationRepository(session)
        self.email_repo = EmailRepository(session)
        self.lead_repo = LeadRepository(session)

    async def create_for_email(self, lead: Lead, email: EmailMessage) -> Optional[Notification]:
        """
        Record that a lead replied.
        Failures are logged and swallowed; the stored email stays and the
        next backfill pass creates the missing notification.
        """
        notification = Notification(
            lead_id=lead.id,
            email_id=email.id,
            lead_name=lead.client_name,
            from_email=email.from_email or lead.email,
            subject=email.subject
        )
        try:
            self.session.add(notification)
            await self.session.commit()
            await self.session.refresh(notification)
        except SQLAlchemyError:
            logger.exception(f"Failed to create notification for email {email.id}")
            await self.session.rollback()
            # rollback expires every loaded instance
            await self.session.refresh(lead)
            await self.session.refresh(email)
            return None

        logger.info(f"Notification created for lead '{lead.client_name}'")
        return notification

    async def list_active(self, user: Optional[User] = None) -> List[LeadNotificationGroup]:
        """
        Active notifications collapsed to one entry per lead, most recent
        lead first. Members only see leads assigned to them.
        """
        notifications = await self.notification_repo.list_active()

        if user is not None and not user.is_admin:
            result = await self.session.exec(select(Lead.id).where(Lead.assigned_to == user.id))
            visible = set(result.all())
            notifications = [n for n in notifications if n.lead_id in visible]

        groups = {}
        for n in notifications:
            group = groups.get(n.lead_id)
            if group is None:
                groups[n.lead_id] = LeadNotificationGroup(
                    lead_id=n.lead_id,
                    lead_name=n.lead_name,
                    from_email=n.from_email,
                    subject=n.subject,
                    count=1,
                    notification_ids=[n.id],
                    latest_at=n.created_at
                )
            else:
                group.count += 1
                group.notification_ids.append(n.id)

        return list(groups.values())

    async def dismiss(self, notification_id: uuid.UUID) -> int:
        notification = await self.notification_repo.get(notification_id)
        if not notification:
            raise_not_found("Notification", str(notification_id))
        return await self.notification_repo.dismiss_where(Notification.id == notification_id)

    async def dismiss_for_lead(self, lead_id: uuid.UUID) -> int:
        return await self.notification_repo.dismiss_where(Notification.lead_id == lead_id)

    async def dismiss_all(self, user: Optional[User] = None) -> int:
        if user is not None and not user.is_admin:
            assigned = select(Lead.id).where(Lead.assigned_to == user.id)
            return await self.notification_repo.dismiss_where(col(Notification.lead_id).in_(assigned))
        return await self.notification_repo.dismiss_where()

    async def purge_dismissed(self, retention_days: int) -> int:
        """Delete notifications dismissed more than `retention_days` ago."""
        cutoff = datetime.utcnow() - timedelta(days=retention_days)
        purged = await self.notification_repo.purge_dismissed(cutoff)
        if purged:
            logger.info(f"Purged {purged} dismissed notifications")
        return purged

    async def backfill_missing(self, since: datetime) -> int:
        """Create notifications for received emails since `since` that have none."""
        emails = await self.email_repo.list_received_without_notification(since)
        email_ids = [email.id for email in emails]
        created = 0
        for email_id in email_ids:
            email = await self.email_repo.get(email_id)
            lead = await self.lead_repo.get(email.lead_id) if email else None
            if lead and await self.create_for_email(lead, email):
                created += 1
        if created:
            logger.info(f"Backfilled {created} missing notifications")
        return created
