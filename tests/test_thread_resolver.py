"""
Thread resolver tests
"""
from datetime import datetime, timedelta

import pytest

from leaddesk.models import Direction
from leaddesk.services.mail_headers import InboundEmail
from leaddesk.services.thread_resolver import ThreadResolver


@pytest.mark.asyncio
async def test_resolves_by_sender_address(session, make_lead):
    lead = await make_lead(email="jane@acme.com")

    inbound = InboundEmail(sender_address="jane@acme.com", provider_thread_id="unknown-thread")
    resolved = await ThreadResolver(session).resolve(inbound)

    assert resolved.id == lead.id


@pytest.mark.asyncio
async def test_address_match_prefers_oldest_lead(session, make_lead):
    """Duplicate lead emails resolve to the earliest created lead"""
    now = datetime.utcnow()
    newer = await make_lead(client_name="Newer", email="dup@acme.com", created_at=now)
    older = await make_lead(client_name="Older", email="dup@acme.com", created_at=now - timedelta(days=3))

    resolved = await ThreadResolver(session).resolve(InboundEmail(sender_address="dup@acme.com"))

    assert resolved.id == older.id
    assert resolved.id != newer.id


@pytest.mark.asyncio
async def test_thread_history_wins_over_address(session, make_lead, make_email):
    """A known thread + sender pair beats the address lookup"""
    now = datetime.utcnow()
    await make_lead(client_name="Oldest", email="bob@acme.com", created_at=now - timedelta(days=10))
    threaded = await make_lead(client_name="Threaded", email="bob@acme.com", created_at=now)
    await make_email(
        threaded,
        direction=Direction.RECEIVED,
        message_id="m-1",
        conversation_id="conv-9",
        from_email="bob@acme.com"
    )

    inbound = InboundEmail(sender_address="bob@acme.com", provider_thread_id="conv-9")
    resolved = await ThreadResolver(session).resolve(inbound)

    assert resolved.id == threaded.id


@pytest.mark.asyncio
async def test_thread_id_alone_does_not_match(session, make_lead, make_email):
    """Another sender in a known thread is matched by address only"""
    lead = await make_lead(email="jane@acme.com")
    await make_email(
        lead,
        direction=Direction.RECEIVED,
        message_id="m-2",
        conversation_id="conv-1",
        from_email="jane@acme.com"
    )

    inbound = InboundEmail(sender_address="stranger@other.com", provider_thread_id="conv-1")

    assert await ThreadResolver(session).resolve(inbound) is None


@pytest.mark.asyncio
async def test_address_match_is_exact(session, make_lead):
    await make_lead(email="jane@acme.com")

    inbound = InboundEmail(sender_address="Jane@Acme.com")

    assert await ThreadResolver(session).resolve(inbound) is None


@pytest.mark.asyncio
async def test_missing_sender_is_unmatched(session, make_lead):
    await make_lead(email="jane@acme.com")

    assert await ThreadResolver(session).resolve(InboundEmail(provider_thread_id="conv-1")) is None
