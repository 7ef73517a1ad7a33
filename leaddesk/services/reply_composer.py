"""
Reply composer - builds threading headers for outbound email from the
stored correspondence and sends it through the mail provider.
"""
import logging
from typing import Optional, NamedTuple

from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.config import settings
from leaddesk.models.email import EmailMessage
from leaddesk.models.lead import Lead, LeadStatus
from leaddesk.repositories.email_repo import EmailRepository
from leaddesk.repositories.lead_repo import LeadRepository
from leaddesk.services.correspondence_service import CorrespondenceService
from leaddesk.services.integrations.base import MailProvider, ThreadContext

logger = logging.getLogger(__name__)

REPLY_PREFIX = "Re: "


def reply_subject(subject: Optional[str]) -> str:
    """Prefix "Re: " once; existing prefixes are matched case-insensitively."""
    subject = (subject or "").strip()
    if subject.lower().startswith(REPLY_PREFIX.strip().lower()):
        return subject
    return f"{REPLY_PREFIX}{subject}"


def build_references(prior_chain: Optional[str], prior_message_id: Optional[str]) -> Optional[str]:
    """
    Extend the parent's References chain with the parent's own Message-ID.
    Oldest first, each id at most once.
    """
    chain = []
    for ref in (prior_chain or "").split():
        if ref not in chain:
            chain.append(ref)
    if prior_message_id and prior_message_id not in chain:
        chain.append(prior_message_id)
    return " ".join(chain) or None


class ComposedEmail(NamedTuple):
    to: str
    subject: str
    body: str
    context: ThreadContext


class ReplyComposer:
    """Composes and sends email to a lead, threaded onto the latest stored message."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.email_repo = EmailRepository(session)
        self.lead_repo = LeadRepository(session)
        self.correspondence = CorrespondenceService(session)

    async def compose(self, lead: Lead, subject: Optional[str], body: str) -> ComposedEmail:
        prior = await self.email_repo.get_latest_for_lead(lead.id)
        if prior is None:
            return ComposedEmail(
                to=lead.email,
                subject=subject or lead.subject or "",
                body=body,
                context=ThreadContext()
            )

        return ComposedEmail(
            to=lead.email,
            subject=reply_subject(subject or prior.subject),
            body=body,
            context=self._context_from(prior)
        )

    async def send(
        self,
        lead: Lead,
        subject: Optional[str],
        body: str,
        provider: MailProvider
    ) -> EmailMessage:
        """
        Send through the provider, store the sent email and mark the lead
        Contacted.

        Raises:
            MailProviderError: the provider rejected the send; nothing is stored
        """
        composed = await self.compose(lead, subject, body)
        result = await provider.send(composed.to, composed.subject, composed.body, composed.context)

        recorded = await self.correspondence.record_sent(
            lead,
            composed.subject,
            composed.body,
            composed.context,
            result,
            from_email=settings.EMAIL_FROM_ADDRESS or None
        )
        await self.lead_repo.update_status(lead.id, LeadStatus.CONTACTED)

        logger.info(f"Email sent to lead '{lead.client_name}' ({provider.name})")
        return recorded.email

    @staticmethod
    def _context_from(prior: EmailMessage) -> ThreadContext:
        return ThreadContext(
            in_reply_to=prior.message_id_header,
            references=build_references(prior.references, prior.message_id_header),
            thread_id=prior.conversation_id,
            reply_to_provider_id=prior.message_id
        )
