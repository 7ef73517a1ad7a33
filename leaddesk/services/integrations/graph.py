"""
Microsoft Graph mail integration.
App-only access (client credentials) to a single shared mailbox.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Optional, List, Dict, Any

import httpx

from leaddesk.config import settings
from leaddesk.core.exceptions import MailProviderError
from leaddesk.services.integrations.base import MailProvider, TokenProvider, ThreadContext, SendResult
from leaddesk.services.mail_headers import GraphMessage, InboundEmail, extract

logger = logging.getLogger(__name__)

SERVICE_NAME = "Microsoft Graph"
MESSAGE_FIELDS = "id,conversationId,internetMessageId,subject,from,toRecipients,body,receivedDateTime,internetMessageHeaders"
IMMUTABLE_ID_PREFERENCE = 'IdType="ImmutableId"'


def _raise_for_response(response: httpx.Response, action: str) -> None:
    if response.status_code < 400:
        return
    detail = response.text
    try:
        error = response.json().get("error") or {}
        detail = f"{error.get('code', '')}: {error.get('message', '')}".strip(": ") or detail
    except ValueError:
        pass
    raise MailProviderError(SERVICE_NAME, f"{action} failed: {detail}", response.status_code)


class GraphTokenProvider(TokenProvider):
    """
    Client-credentials token for Microsoft Graph.
    The token is cached until shortly before it expires; concurrent callers
    share a single refresh.
    """

    AUTH_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
    SCOPE = "https://graph.microsoft.com/.default"
    EXPIRY_SKEW_SECONDS = 60

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        tenant_id: str,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.tenant_id = tenant_id
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        async with self._lock:
            if self._token and time.monotonic() < self._expires_at:
                return self._token

            logger.info("Acquiring Microsoft Graph access token")
            try:
                response = await self.client.post(
                    self.AUTH_URL.format(tenant=self.tenant_id),
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "scope": self.SCOPE
                    }
                )
            except httpx.TransportError as e:
                raise MailProviderError(SERVICE_NAME, f"token endpoint unavailable: {e}")

            _raise_for_response(response, "Token request")
            data = response.json()

            self._token = data["access_token"]
            expires_in = int(data.get("expires_in", 3600))
            self._expires_at = time.monotonic() + max(expires_in - self.EXPIRY_SKEW_SECONDS, 0)
            return self._token


class GraphMailProvider(MailProvider):
    """Inbox polling and sending through the Graph REST API."""

    name = "graph"
    BASE_URL = "https://graph.microsoft.com/v1.0"
    PAGE_SIZE = 50

    def __init__(
        self,
        token_provider: TokenProvider,
        mailbox: str,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.token_provider = token_provider
        self.mailbox = mailbox
        self.client = client or httpx.AsyncClient(timeout=30.0)

    def is_configured(self) -> bool:
        return bool(self.mailbox)

    async def _request(self, method: str, path: str, action: str, **kwargs) -> Dict[str, Any]:
        """
        Call the mailbox API. `path` is relative to the mailbox, or an absolute
        `@odata.nextLink` URL. Ids are requested in immutable form so a sent
        draft keeps the id we stored for it.
        """
        token = await self.token_provider.get_token()
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token}"
        headers["Prefer"] = ", ".join(filter(None, [headers.get("Prefer"), IMMUTABLE_ID_PREFERENCE]))
        url = path if path.startswith("https://") else f"{self.BASE_URL}/users/{self.mailbox}{path}"

        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise MailProviderError(SERVICE_NAME, f"{action} failed, service unavailable: {e}")

        _raise_for_response(response, action)
        if response.status_code == 202 or not response.content:
            return {}
        return response.json()

    async def fetch_since(self, since: Optional[datetime]) -> List[InboundEmail]:
        params = {
            "$top": str(self.PAGE_SIZE),
            "$orderby": "receivedDateTime desc",
            "$select": MESSAGE_FIELDS
        }
        if since:
            params["$filter"] = f"receivedDateTime gt {since.strftime('%Y-%m-%dT%H:%M:%SZ')}"

        messages = []
        path = "/mailFolders/Inbox/messages"
        while path:
            data = await self._request(
                "GET",
                path,
                "Inbox listing",
                params=params,
                headers={"Prefer": 'outlook.body-content-type="text"'}
            )
            messages.extend(data.get("value") or [])
            # nextLink already carries the query
            path = data.get("@odata.nextLink")
            params = None

        logger.debug(f"Graph returned {len(messages)} inbox messages")
        return [extract(GraphMessage(payload=message)) for message in messages]

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        context: Optional[ThreadContext] = None
    ) -> SendResult:
        draft = None
        if context and context.reply_to_provider_id:
            try:
                draft = await self._create_reply_draft(context.reply_to_provider_id, subject, body)
            except MailProviderError as e:
                logger.warning(f"createReply failed, sending as a new message: {e}")

        if draft is None:
            draft = await self._request(
                "POST",
                "/messages",
                "Draft creation",
                json={
                    "subject": subject,
                    "body": {"contentType": "Text", "content": body},
                    "toRecipients": [{"emailAddress": {"address": to}}]
                }
            )

        await self._request("POST", f"/messages/{draft['id']}/send", "Send")
        logger.info(f"Sent email to {to} via Microsoft Graph")

        return SendResult(
            provider_message_id=draft.get("id"),
            thread_id=draft.get("conversationId") or (context.thread_id if context else None),
            message_id_header=draft.get("internetMessageId")
        )

    async def _create_reply_draft(self, parent_id: str, subject: str, body: str) -> Dict[str, Any]:
        """Reply draft on the parent message; Graph fills in the threading headers."""
        reply = await self._request("POST", f"/messages/{parent_id}/createReply", "createReply", json={})
        updated = await self._request(
            "PATCH",
            f"/messages/{reply['id']}",
            "Reply draft update",
            json={"subject": subject, "body": {"contentType": "Text", "content": body}}
        )
        return {**reply, **updated}


def build_graph_provider() -> GraphMailProvider:
    """Graph provider from settings."""
    token_provider = GraphTokenProvider(
        client_id=settings.AZURE_CLIENT_ID,
        client_secret=settings.AZURE_CLIENT_SECRET,
        tenant_id=settings.AZURE_TENANT_ID
    )
    return GraphMailProvider(token_provider, settings.EMAIL_FROM_ADDRESS)


def graph_configured() -> bool:
    return bool(
        settings.AZURE_TENANT_ID and settings.AZURE_CLIENT_ID
        and settings.AZURE_CLIENT_SECRET and settings.EMAIL_FROM_ADDRESS
    )
