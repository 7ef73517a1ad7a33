"""
Notification repository.
"""
import uuid
from typing import List
from datetime import datetime

from sqlmodel import select, col
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.models.notification import Notification
from leaddesk.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Notification, session)

    async def list_active(self) -> List[Notification]:
        """Undismissed notifications, newest first."""
        query = (
            select(Notification)
            .where(Notification.dismissed == False)
            .order_by(col(Notification.created_at).desc())
        )
        result = await self.session.exec(query)
        return result.all()

    async def dismiss_where(self, *conditions) -> int:
        """Mark every active notification matching the conditions dismissed."""
        query = select(Notification).where(Notification.dismissed == False, *conditions)
        result = await self.session.exec(query)
        rows = result.all()

        now = datetime.utcnow()
        for row in rows:
            row.dismissed = True
            row.dismissed_at = now
            self.session.add(row)

        await self.session.commit()
        return len(rows)

    async def purge_dismissed(self, before: datetime) -> int:
        """Delete notifications dismissed before the cutoff."""
        query = select(Notification).where(
            Notification.dismissed == True,
            col(Notification.dismissed_at) < before
        )
        result = await self.session.exec(query)
        rows = result.all()
        for row in rows:
            await self.session.delete(row)
        await self.session.commit()
        return len(rows)

    async def delete_by_lead(self, lead_id: uuid.UUID) -> int:
        """Delete every notification of a lead. Does not commit."""
        result = await self.session.exec(select(Notification).where(Notification.lead_id == lead_id))
        rows = result.all()
        for row in rows:
            await self.session.delete(row)
        return len(rows)
