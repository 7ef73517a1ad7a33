"""
Email poller tests
"""
from datetime import datetime, timedelta

import pytest

from leaddesk.core.exceptions import MailProviderError
from leaddesk.repositories.email_repo import EmailRepository
from leaddesk.repositories.notification_repo import NotificationRepository
from leaddesk.services.email_poller import EmailPoller, PollState, compute_backoff
from leaddesk.services.integrations.email import MockMailProvider
from leaddesk.services.mail_headers import InboundEmail


class ErrorProvider(MockMailProvider):
    """Fetch always fails with the given error"""

    def __init__(self, error: MailProviderError):
        super().__init__()
        self.error = error
        self.calls = 0

    async def fetch_since(self, since):
        self.calls += 1
        raise self.error


class UnconfiguredProvider(MockMailProvider):
    def is_configured(self) -> bool:
        return False


def _throttled() -> MailProviderError:
    return MailProviderError("Microsoft Graph", "Too many requests", 429)


def _poller(session_factory, provider, **kwargs) -> EmailPoller:
    kwargs.setdefault("interval_seconds", 30)
    kwargs.setdefault("lookback_hours", 24)
    kwargs.setdefault("backoff_cap_seconds", 300)
    kwargs.setdefault("max_consecutive_errors", 10)
    return EmailPoller(session_factory=session_factory, provider_getter=lambda: provider, **kwargs)


def test_backoff_grows_and_is_capped():
    delays = [compute_backoff(n) for n in range(1, 15)]

    assert delays[0] == 2
    assert delays == sorted(delays)
    assert max(delays) == 300
    assert compute_backoff(4, cap=10) == 10


@pytest.mark.asyncio
async def test_poll_stores_matched_messages(session_factory, session, make_lead, provider):
    lead = await make_lead(email="jane@acme.com")
    now = datetime.utcnow()
    provider.deliver(
        InboundEmail(
            sender_address="jane@acme.com",
            subject="Re: Quote",
            provider_message_id="in-1",
            received_at=now - timedelta(hours=1)
        ),
        InboundEmail(
            sender_address="nobody@else.com",
            provider_message_id="in-2",
            received_at=now - timedelta(hours=1)
        )
    )
    poller = _poller(session_factory, provider)

    summary = await poller.poll_once(now)

    assert summary.checked == 2
    assert summary.saved == 1
    assert summary.unmatched == 1
    assert poller.since == now
    assert poller.state == PollState.IDLE

    emails = await EmailRepository(session).list_by_lead(lead.id)
    assert [e.message_id for e in emails] == ["in-1"]
    assert len(await NotificationRepository(session).list_active()) == 1


@pytest.mark.asyncio
async def test_second_poll_skips_already_seen_window(session_factory, make_lead, provider):
    await make_lead(email="jane@acme.com")
    now = datetime.utcnow()
    provider.deliver(InboundEmail(
        sender_address="jane@acme.com",
        provider_message_id="in-1",
        received_at=now - timedelta(minutes=5)
    ))
    poller = _poller(session_factory, provider)

    await poller.poll_once(now)
    summary = await poller.poll_once(now + timedelta(seconds=30))

    assert summary.checked == 0


@pytest.mark.asyncio
async def test_throttled_failure_sets_backoff(session_factory):
    provider = ErrorProvider(_throttled())
    poller = _poller(session_factory, provider)
    now = datetime.utcnow()

    assert await poller.poll_once(now) is None

    assert poller.consecutive_errors == 1
    assert poller.backoff_until == now + timedelta(seconds=2)
    assert poller.since is None
    assert poller.state == PollState.IDLE


@pytest.mark.asyncio
async def test_ticks_inside_backoff_are_skipped(session_factory):
    provider = ErrorProvider(_throttled())
    poller = _poller(session_factory, provider)
    now = datetime.utcnow()

    await poller.poll_once(now)
    await poller.poll_once(now + timedelta(seconds=1))

    assert provider.calls == 1

    await poller.poll_once(now + timedelta(seconds=3))

    assert provider.calls == 2
    assert poller.consecutive_errors == 2


@pytest.mark.asyncio
async def test_backoff_resets_after_max_consecutive_errors(session_factory):
    provider = ErrorProvider(_throttled())
    poller = _poller(session_factory, provider, max_consecutive_errors=3)
    now = datetime.utcnow()

    for _ in range(3):
        await poller.poll_once(now)
        now = (poller.backoff_until or now) + timedelta(seconds=1)

    assert provider.calls == 3
    assert poller.consecutive_errors == 0
    assert poller.backoff_until is None


@pytest.mark.asyncio
async def test_non_throttled_error_does_not_back_off(session_factory):
    provider = ErrorProvider(MailProviderError("Gmail", "Invalid credentials", 401))
    poller = _poller(session_factory, provider)

    await poller.poll_once(datetime.utcnow())

    assert poller.consecutive_errors == 0
    assert poller.backoff_until is None


@pytest.mark.asyncio
async def test_success_clears_error_state(session_factory, provider):
    poller = _poller(session_factory, provider)
    poller.consecutive_errors = 4
    now = datetime.utcnow()

    summary = await poller.poll_once(now)

    assert summary is not None
    assert poller.consecutive_errors == 0
    assert poller.last_summary is summary


@pytest.mark.asyncio
async def test_busy_poller_skips_tick(session_factory, provider):
    poller = _poller(session_factory, provider)
    poller.state = PollState.PROCESSING

    assert await poller.poll_once(datetime.utcnow()) is None
    assert poller.since is None


@pytest.mark.asyncio
async def test_unconfigured_provider_skips_tick(session_factory):
    poller = _poller(session_factory, UnconfiguredProvider())

    assert await poller.poll_once(datetime.utcnow()) is None
