"""
Mail provider implementations.
Mock provider for development plus the provider factory.
"""
import logging
from datetime import datetime
from email.utils import make_msgid
from typing import Optional, List

from leaddesk.config import settings
from leaddesk.services.integrations.base import MailProvider, ThreadContext, SendResult
from leaddesk.services.integrations.graph import build_graph_provider, graph_configured
from leaddesk.services.integrations.gmail import build_gmail_provider, gmail_configured
from leaddesk.services.mail_headers import InboundEmail

logger = logging.getLogger(__name__)


class MockMailProvider(MailProvider):
    """
    Mock mail provider for development/testing.
    Logs emails instead of sending them. The inbox is empty unless
    messages are queued with `deliver`.
    """

    name = "mock"

    def __init__(self, domain: str = "leaddesk.local"):
        self.domain = domain
        self.inbox: List[InboundEmail] = []
        self.sent: List[dict] = []

    def is_configured(self) -> bool:
        return True

    def deliver(self, *emails: InboundEmail) -> None:
        """Queue messages to be returned by the next fetch."""
        self.inbox.extend(emails)

    async def fetch_since(self, since: Optional[datetime]) -> List[InboundEmail]:
        return [
            email for email in self.inbox
            if since is None or email.received_at is None or email.received_at > since
        ]

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        context: Optional[ThreadContext] = None
    ) -> SendResult:
        """Mock email sending - logs instead of sending."""
        context = context or ThreadContext()
        message_id_header = make_msgid(domain=self.domain)
        provider_message_id = f"mock-{len(self.sent) + 1}"
        thread_id = context.thread_id or f"mock-thread-{provider_message_id}"

        logger.info(f"[MOCK EMAIL] To: {to}, Subject: {subject}, In-Reply-To: {context.in_reply_to}")
        logger.debug(f"[MOCK EMAIL] Body: {body[:100]}...")

        self.sent.append({
            "to": to,
            "subject": subject,
            "body": body,
            "in_reply_to": context.in_reply_to,
            "references": context.references,
            "thread_id": thread_id,
            "message_id_header": message_id_header
        })

        return SendResult(
            provider_message_id=provider_message_id,
            thread_id=thread_id,
            message_id_header=message_id_header
        )


# Provider factory
_current_provider: Optional[MailProvider] = None


def _build_provider() -> MailProvider:
    choice = settings.MAIL_PROVIDER.lower()
    if choice == "graph":
        return build_graph_provider()
    if choice == "gmail":
        return build_gmail_provider()
    if choice == "auto":
        if graph_configured():
            return build_graph_provider()
        if gmail_configured():
            return build_gmail_provider()
        logger.warning("No mail provider configured, emails will be logged only")
    return MockMailProvider()


def get_mail_provider() -> MailProvider:
    """Get the current mail provider instance."""
    global _current_provider
    if _current_provider is None:
        _current_provider = _build_provider()
        logger.info(f"Mail provider: {_current_provider.name}")
    return _current_provider


def set_mail_provider(provider: Optional[MailProvider]) -> None:
    """Set the mail provider. None resets to the configured one."""
    global _current_provider
    _current_provider = provider
