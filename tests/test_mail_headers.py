"""
Header extraction tests
"""
import base64
from datetime import datetime

import pytest

from leaddesk.services.mail_headers import (
    GraphMessage, GmailMessage, extract, parse_address, find_header
)


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def test_parse_address_with_display_name():
    assert parse_address("Jane Doe <jane@acme.com>") == "jane@acme.com"


def test_parse_address_bare():
    assert parse_address("  jane@acme.com ") == "jane@acme.com"


@pytest.mark.parametrize("value", ["", None, "   ", "Jane <>"])
def test_parse_address_empty(value):
    assert parse_address(value) is None


def test_find_header_is_case_insensitive():
    headers = [{"name": "message-id", "value": "<a@x>"}, {"name": "Subject", "value": "Hi"}]
    assert find_header(headers, "Message-ID") == "<a@x>"
    assert find_header(headers, "In-Reply-To") is None
    assert find_header(None, "Subject") is None


def test_graph_message_extraction():
    """Graph resource with internet headers and an HTML body"""
    raw = GraphMessage(payload={
        "id": "AAMk-1",
        "conversationId": "conv-1",
        "subject": "Re: Quote",
        "internetMessageId": "<reply-1@acme.com>",
        "from": {"emailAddress": {"name": "Jane", "address": "jane@acme.com"}},
        "toRecipients": [{"emailAddress": {"address": "sales@leaddesk.test"}}],
        "body": {"contentType": "html", "content": "<p>Sounds <b>good</b></p>"},
        "receivedDateTime": "2026-03-01T10:15:00Z",
        "internetMessageHeaders": [
            {"name": "In-Reply-To", "value": "<sent-1@leaddesk.test>"},
            {"name": "References", "value": "<root@leaddesk.test> <sent-1@leaddesk.test>"}
        ]
    })

    inbound = extract(raw)

    assert inbound.sender_address == "jane@acme.com"
    assert inbound.to_address == "sales@leaddesk.test"
    assert inbound.provider_message_id == "AAMk-1"
    assert inbound.provider_thread_id == "conv-1"
    assert inbound.message_id_header == "<reply-1@acme.com>"
    assert inbound.in_reply_to_header == "<sent-1@leaddesk.test>"
    assert inbound.references_header == "<root@leaddesk.test> <sent-1@leaddesk.test>"
    assert inbound.body_text == "Sounds good"
    assert inbound.received_at == datetime(2026, 3, 1, 10, 15)


def test_graph_message_falls_back_to_from_header():
    raw = GraphMessage(payload={
        "id": "AAMk-2",
        "internetMessageHeaders": [{"name": "From", "value": "Jane <jane@acme.com>"}]
    })

    inbound = extract(raw)

    assert inbound.sender_address == "jane@acme.com"
    assert inbound.subject is None
    assert inbound.in_reply_to_header is None
    assert inbound.body_text == ""


def test_gmail_message_extraction():
    """Gmail multipart message; the text/plain part wins"""
    raw = GmailMessage(payload={
        "id": "gm-1",
        "threadId": "thread-1",
        "internalDate": "1767225600000",
        "snippet": "snippet text",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [
                {"name": "From", "value": "Jane Doe <jane@acme.com>"},
                {"name": "To", "value": "sales@leaddesk.test"},
                {"name": "Subject", "value": "Re: Quote"},
                {"name": "Message-Id", "value": "<reply-2@acme.com>"},
                {"name": "In-Reply-To", "value": "<sent-2@leaddesk.test>"}
            ],
            "parts": [
                {"mimeType": "text/html", "body": {"data": _b64("<p>html</p>")}},
                {"mimeType": "text/plain", "body": {"data": _b64("plain reply")}}
            ]
        }
    })

    inbound = extract(raw)

    assert inbound.sender_address == "jane@acme.com"
    assert inbound.to_address == "sales@leaddesk.test"
    assert inbound.provider_thread_id == "thread-1"
    assert inbound.message_id_header == "<reply-2@acme.com>"
    assert inbound.in_reply_to_header == "<sent-2@leaddesk.test>"
    assert inbound.references_header is None
    assert inbound.body_text == "plain reply"
    assert inbound.received_at == datetime(2026, 1, 1)


def test_gmail_message_uses_snippet_without_body():
    raw = GmailMessage(payload={
        "id": "gm-2",
        "snippet": "just the snippet",
        "payload": {"mimeType": "multipart/mixed", "headers": [], "parts": []}
    })

    inbound = extract(raw)

    assert inbound.body_text == "just the snippet"
    assert inbound.sender_address is None
