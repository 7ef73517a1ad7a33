"""
Gmail mail integration.
Uses an OAuth refresh token for the mailbox owner. The Google client
libraries are synchronous, so every API call runs in a worker thread.
"""
import asyncio
import base64
import calendar
import logging
from datetime import datetime
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional, List

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from leaddesk.config import settings
from leaddesk.core.exceptions import MailProviderError
from leaddesk.services.integrations.base import MailProvider, TokenProvider, ThreadContext, SendResult
from leaddesk.services.mail_headers import GmailMessage, InboundEmail, extract, find_header

logger = logging.getLogger(__name__)

SERVICE_NAME = "Gmail"
TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]


def _provider_error(e: HttpError, action: str) -> MailProviderError:
    status = getattr(getattr(e, "resp", None), "status", None)
    reason = getattr(e, "reason", None) or str(e)
    return MailProviderError(SERVICE_NAME, f"{action} failed: {reason}", int(status) if status else None)


class GmailTokenProvider(TokenProvider):
    """Refresh-token credentials, refreshed on demand under a lock."""

    def __init__(self, client_id: str, client_secret: str, refresh_token: str):
        self.credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=TOKEN_URI,
            scopes=SCOPES
        )
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        async with self._lock:
            if not self.credentials.valid:
                logger.info("Refreshing Gmail access token")
                try:
                    await asyncio.to_thread(self.credentials.refresh, Request())
                except RefreshError as e:
                    raise MailProviderError(SERVICE_NAME, f"token refresh failed: {e}")
            return self.credentials.token


class GmailMailProvider(MailProvider):
    """Inbox polling and sending through the Gmail API."""

    name = "gmail"
    PAGE_SIZE = 50

    def __init__(self, token_provider: GmailTokenProvider, mailbox: str = ""):
        self.token_provider = token_provider
        self.mailbox = mailbox
        self._service = None

    def is_configured(self) -> bool:
        return bool(self.token_provider.credentials.refresh_token)

    async def _get_service(self):
        await self.token_provider.get_token()
        if self._service is None:
            self._service = build(
                "gmail", "v1",
                credentials=self.token_provider.credentials,
                cache_discovery=False
            )
        return self._service

    async def _execute(self, request, action: str) -> dict:
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            raise _provider_error(e, action)
        except OSError as e:
            raise MailProviderError(SERVICE_NAME, f"{action} failed, service unavailable: {e}")

    async def fetch_since(self, since: Optional[datetime]) -> List[InboundEmail]:
        service = await self._get_service()
        query = "in:inbox"
        if since:
            query += f" after:{calendar.timegm(since.utctimetuple())}"

        refs = []
        page_token = None
        while True:
            params = {"userId": "me", "q": query, "maxResults": self.PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            listing = await self._execute(service.users().messages().list(**params), "Inbox listing")
            refs.extend(listing.get("messages") or [])
            page_token = listing.get("nextPageToken")
            if not page_token:
                break

        emails = []
        for ref in refs:
            message = await self._execute(
                service.users().messages().get(userId="me", id=ref["id"], format="full"),
                "Message fetch"
            )
            emails.append(extract(GmailMessage(payload=message)))

        logger.debug(f"Gmail returned {len(emails)} inbox messages")
        return emails

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        context: Optional[ThreadContext] = None
    ) -> SendResult:
        service = await self._get_service()

        message = MIMEText(body, "plain", "utf-8")
        message["To"] = to
        if self.mailbox:
            message["From"] = self.mailbox
        message["Subject"] = subject
        domain = self.mailbox.split("@")[-1] if "@" in self.mailbox else None
        message["Message-ID"] = make_msgid(domain=domain)
        if context and context.in_reply_to:
            message["In-Reply-To"] = context.in_reply_to
        if context and context.references:
            message["References"] = context.references

        send_body = {"raw": base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")}
        if context and context.thread_id:
            send_body["threadId"] = context.thread_id

        sent = await self._execute(service.users().messages().send(userId="me", body=send_body), "Send")
        logger.info(f"Sent email to {to} via Gmail")

        # Gmail may rewrite the Message-ID, so read back what was stored
        message_id_header = message["Message-ID"]
        try:
            stored = await self._execute(
                service.users().messages().get(
                    userId="me", id=sent["id"], format="metadata", metadataHeaders=["Message-ID"]
                ),
                "Sent message lookup"
            )
            message_id_header = find_header((stored.get("payload") or {}).get("headers"), "Message-ID") or message_id_header
        except MailProviderError as e:
            logger.warning(f"Could not read back Message-ID of sent message: {e}")

        return SendResult(
            provider_message_id=sent.get("id"),
            thread_id=sent.get("threadId") or (context.thread_id if context else None),
            message_id_header=message_id_header
        )


def build_gmail_provider() -> GmailMailProvider:
    """Gmail provider from settings."""
    token_provider = GmailTokenProvider(
        client_id=settings.GMAIL_CLIENT_ID,
        client_secret=settings.GMAIL_CLIENT_SECRET,
        refresh_token=settings.GMAIL_REFRESH_TOKEN
    )
    return GmailMailProvider(token_provider, settings.EMAIL_FROM_ADDRESS)


def gmail_configured() -> bool:
    return bool(settings.GMAIL_CLIENT_ID and settings.GMAIL_CLIENT_SECRET and settings.GMAIL_REFRESH_TOKEN)
