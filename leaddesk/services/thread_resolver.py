"""
Thread resolver - decides which lead an inbound email belongs to.
"""
import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.models.lead import Lead
from leaddesk.repositories.email_repo import EmailRepository
from leaddesk.repositories.lead_repo import LeadRepository
from leaddesk.services.mail_headers import InboundEmail

logger = logging.getLogger(__name__)


class ThreadResolver:
    """
    Ordered match chain, first hit wins:

    1. a stored email in the same provider thread sent from the same address
    2. the oldest lead whose email equals the sender address exactly
    3. no match

    A thread id alone is never enough: providers reuse conversation ids
    across unrelated senders.
    """

    def __init__(self, session: AsyncSession):
        self.email_repo = EmailRepository(session)
        self.lead_repo = LeadRepository(session)

    async def resolve(self, inbound: InboundEmail) -> Optional[Lead]:
        sender = inbound.sender_address
        if not sender:
            return None

        if inbound.provider_thread_id:
            prior = await self.email_repo.get_by_thread_and_sender(inbound.provider_thread_id, sender)
            if prior:
                lead = await self.lead_repo.get(prior.lead_id)
                if lead:
                    logger.debug(f"Matched {sender} to lead {lead.id} by thread")
                    return lead

        lead = await self.lead_repo.get_first_by_email(sender)
        if lead:
            logger.debug(f"Matched {sender} to lead {lead.id} by address")
        return lead
