"""
Gmail provider tests (in-memory API service, no network)
"""
from datetime import datetime

import pytest

from leaddesk.services.integrations.gmail import GmailMailProvider


class StaticToken:
    async def get_token(self) -> str:
        return "token-1"


class FakeRequest:
    def __init__(self, result: dict):
        self.result = result

    def execute(self) -> dict:
        return self.result


class FakeMessages:
    """users().messages() with a paged listing"""

    def __init__(self, pages: dict, messages: dict):
        self.pages = pages
        self.messages = messages
        self.list_calls = []

    def list(self, **kwargs):
        self.list_calls.append(kwargs)
        return FakeRequest(self.pages[kwargs.get("pageToken")])

    def get(self, userId, id, **kwargs):
        return FakeRequest(self.messages[id])


class FakeService:
    def __init__(self, messages: FakeMessages):
        self._messages = messages

    def users(self):
        return self

    def messages(self):
        return self._messages


def _message(message_id: str) -> dict:
    return {
        "id": message_id,
        "threadId": "thread-1",
        "internalDate": "1767225600000",
        "snippet": "Thanks",
        "payload": {
            "mimeType": "text/plain",
            "headers": [
                {"name": "From", "value": "Jane Doe <jane@acme.com>"},
                {"name": "Subject", "value": "Re: Quote"}
            ]
        }
    }


@pytest.mark.asyncio
async def test_fetch_since_reads_every_page():
    messages = FakeMessages(
        pages={
            None: {"messages": [{"id": "g1"}, {"id": "g2"}], "nextPageToken": "page-2"},
            "page-2": {"messages": [{"id": "g3"}]}
        },
        messages={mid: _message(mid) for mid in ("g1", "g2", "g3")}
    )
    provider = GmailMailProvider(StaticToken(), "sales@acme.com")
    provider._service = FakeService(messages)

    emails = await provider.fetch_since(datetime(2026, 1, 1))

    assert [e.provider_message_id for e in emails] == ["g1", "g2", "g3"]
    assert len(messages.list_calls) == 2
    assert "pageToken" not in messages.list_calls[0]
    assert messages.list_calls[1]["pageToken"] == "page-2"
    assert messages.list_calls[1]["q"] == "in:inbox after:1767225600"
    assert emails[0].sender_address == "jane@acme.com"
