"""
Email sync service - one pass of fetching the inbox and attaching replies
to leads.
"""
import logging
from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.services.correspondence_service import CorrespondenceService
from leaddesk.services.integrations.base import MailProvider
from leaddesk.services.mail_headers import InboundEmail
from leaddesk.services.thread_resolver import ThreadResolver

logger = logging.getLogger(__name__)


class SyncSummary(BaseModel):
    checked: int = 0
    matched: int = 0
    saved: int = 0
    duplicates: int = 0
    unmatched: int = 0
    last_sync: datetime


class EmailSyncService:
    """Fetch, resolve and store inbound email. Messages are handled one at a time."""

    def __init__(self, session: AsyncSession, provider: MailProvider):
        self.session = session
        self.provider = provider
        self.resolver = ThreadResolver(session)
        self.correspondence = CorrespondenceService(session)

    async def fetch(self, since: Optional[datetime]) -> List[InboundEmail]:
        """
        Raises:
            MailProviderError: the provider call failed
        """
        return await self.provider.fetch_since(since)

    async def process(self, messages: List[InboundEmail]) -> SyncSummary:
        summary = SyncSummary(checked=len(messages), last_sync=datetime.utcnow())

        for inbound in messages:
            lead = await self.resolver.resolve(inbound)
            if lead is None:
                # No lead to attach it to; the message is not stored
                summary.unmatched += 1
                logger.info(f"No lead matches sender {inbound.sender_address}, skipping")
                continue

            summary.matched += 1
            result = await self.correspondence.record_inbound(lead, inbound)
            if result.stored:
                summary.saved += 1
                logger.info(f"Stored reply from {inbound.sender_address} for lead '{lead.client_name}'")
            else:
                summary.duplicates += 1

        return summary

    async def sync(self, since: Optional[datetime]) -> SyncSummary:
        """Fetch everything received after `since` and process it."""
        messages = await self.fetch(since)
        summary = await self.process(messages)
        logger.info(
            f"Inbox sync: checked={summary.checked} saved={summary.saved} "
            f"duplicates={summary.duplicates} unmatched={summary.unmatched}"
        )
        return summary
