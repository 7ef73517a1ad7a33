"""
Message header extraction.
Turns a provider-native message (Microsoft Graph or Gmail) into a single
normalized InboundEmail record. Pure functions, no I/O.
"""
import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Optional, List, Literal, Union

from pydantic import BaseModel


class GraphMessage(BaseModel):
    """Raw message resource as returned by Microsoft Graph."""
    provider: Literal["graph"] = "graph"
    payload: dict


class GmailMessage(BaseModel):
    """Raw message resource as returned by the Gmail API (format=full)."""
    provider: Literal["gmail"] = "gmail"
    payload: dict


RawMessage = Union[GraphMessage, GmailMessage]


class InboundEmail(BaseModel):
    """Normalized inbound message. Every field tolerates absence."""
    sender_address: Optional[str] = None
    subject: Optional[str] = None
    provider_message_id: Optional[str] = None
    provider_thread_id: Optional[str] = None
    message_id_header: Optional[str] = None
    in_reply_to_header: Optional[str] = None
    references_header: Optional[str] = None
    body_text: str = ""
    to_address: Optional[str] = None
    received_at: Optional[datetime] = None


_ANGLE_ADDRESS = re.compile(r"<([^<>]*)>")
_HTML_TAG = re.compile(r"<[^>]+>")


def parse_address(value: Optional[str]) -> Optional[str]:
    """
    Unpack the address from a From/To header value.

    "Jane Doe <jane@acme.com>" -> "jane@acme.com"
    "jane@acme.com"            -> "jane@acme.com"
    "" / None                  -> None
    """
    if not value:
        return None
    match = _ANGLE_ADDRESS.search(value)
    address = match.group(1) if match else value
    address = address.strip()
    return address or None


def find_header(headers: Optional[List[dict]], name: str) -> Optional[str]:
    """Case-insensitive lookup in a list of {"name", "value"} header dicts."""
    if not headers:
        return None
    wanted = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == wanted:
            value = header.get("value")
            return value.strip() if isinstance(value, str) and value.strip() else None
    return None


def extract(raw: RawMessage) -> InboundEmail:
    """Normalize a raw provider message."""
    if isinstance(raw, GraphMessage):
        return _extract_graph(raw.payload)
    if isinstance(raw, GmailMessage):
        return _extract_gmail(raw.payload)
    raise TypeError(f"Unsupported message type: {type(raw).__name__}")


def _extract_graph(payload: dict) -> InboundEmail:
    headers = payload.get("internetMessageHeaders") or []

    sender = (payload.get("from") or {}).get("emailAddress") or {}
    sender_address = parse_address(sender.get("address")) or parse_address(find_header(headers, "From"))

    recipients = payload.get("toRecipients") or []
    to_address = None
    if recipients:
        to_address = parse_address((recipients[0].get("emailAddress") or {}).get("address"))

    body = payload.get("body") or {}
    body_text = body.get("content") or ""
    if (body.get("contentType") or "").lower() == "html":
        body_text = _strip_html(body_text)

    return InboundEmail(
        sender_address=sender_address,
        subject=payload.get("subject") or None,
        provider_message_id=payload.get("id"),
        provider_thread_id=payload.get("conversationId"),
        message_id_header=payload.get("internetMessageId") or find_header(headers, "Message-ID"),
        in_reply_to_header=find_header(headers, "In-Reply-To"),
        references_header=find_header(headers, "References"),
        body_text=body_text.strip(),
        to_address=to_address,
        received_at=_parse_iso(payload.get("receivedDateTime")),
    )


def _extract_gmail(payload: dict) -> InboundEmail:
    part = payload.get("payload") or {}
    headers = part.get("headers") or []

    body_text = _gmail_body(part)
    if not body_text:
        body_text = payload.get("snippet") or ""

    received_at = None
    internal_date = payload.get("internalDate")
    if internal_date:
        try:
            received_at = datetime.fromtimestamp(int(internal_date) / 1000, timezone.utc).replace(tzinfo=None)
        except (TypeError, ValueError):
            received_at = None

    return InboundEmail(
        sender_address=parse_address(find_header(headers, "From")),
        subject=find_header(headers, "Subject"),
        provider_message_id=payload.get("id"),
        provider_thread_id=payload.get("threadId"),
        message_id_header=find_header(headers, "Message-ID"),
        in_reply_to_header=find_header(headers, "In-Reply-To"),
        references_header=find_header(headers, "References"),
        body_text=body_text.strip(),
        to_address=parse_address(find_header(headers, "To")),
        received_at=received_at,
    )


def _gmail_body(part: dict) -> str:
    """Body of a text/plain part, searching nested parts depth-first."""
    mime_type = (part.get("mimeType") or "").lower()
    data = (part.get("body") or {}).get("data")

    if data and (mime_type == "text/plain" or not part.get("parts")):
        text = _b64url_decode(data)
        return _strip_html(text) if mime_type == "text/html" else text

    for child in part.get("parts") or []:
        if (child.get("mimeType") or "").lower() == "text/plain" and (child.get("body") or {}).get("data"):
            return _b64url_decode(child["body"]["data"])
        if child.get("parts"):
            text = _gmail_body(child)
            if text:
                return text
    return ""


def _b64url_decode(data: str) -> str:
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="replace")


def _strip_html(text: str) -> str:
    return _HTML_TAG.sub("", text)


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a Graph timestamp into a naive UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
