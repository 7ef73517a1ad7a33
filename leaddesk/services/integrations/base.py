"""
Base interfaces for integration providers.
Abstract base classes for the mail providers the inbox poller and the
reply composer talk to.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, NamedTuple

from leaddesk.services.mail_headers import InboundEmail


class ThreadContext(NamedTuple):
    """Threading headers for an outbound message. All None for a fresh message."""
    in_reply_to: Optional[str] = None  # Message-ID header of the parent
    references: Optional[str] = None  # space-separated ancestor Message-IDs, oldest first
    thread_id: Optional[str] = None  # provider conversation/thread id
    reply_to_provider_id: Optional[str] = None  # provider id of the parent message


class SendResult(NamedTuple):
    """What the provider reports back after a send."""
    provider_message_id: Optional[str] = None
    thread_id: Optional[str] = None
    message_id_header: Optional[str] = None


class TokenProvider(ABC):
    """Supplies a valid access token, refreshing it when it has expired."""

    @abstractmethod
    async def get_token(self) -> str:
        pass


class MailProvider(ABC):
    """Base interface for mailbox providers (Microsoft Graph, Gmail)."""

    name: str = "mail"

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the credentials needed to reach the mailbox are present."""
        pass

    @abstractmethod
    async def fetch_since(self, since: Optional[datetime]) -> List[InboundEmail]:
        """
        Fetch inbox messages received after `since` (naive UTC).

        Raises:
            MailProviderError: the provider call failed
        """
        pass

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        context: Optional[ThreadContext] = None
    ) -> SendResult:
        """
        Send a plain-text email, threading it when a context is given.

        Raises:
            MailProviderError: the provider call failed
        """
        pass
