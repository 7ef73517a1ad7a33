"""
Notification service tests
"""
import uuid
from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from leaddesk.models import Direction, Notification, Roles
from leaddesk.repositories.notification_repo import NotificationRepository
from leaddesk.services.notification_service import NotificationService


async def _notify(session, lead, make_email, message_id: str):
    email = await make_email(
        lead,
        direction=Direction.RECEIVED,
        message_id=message_id,
        subject=f"Reply {message_id}",
        from_email=lead.email
    )
    return await NotificationService(session).create_for_email(lead, email)


@pytest.mark.asyncio
async def test_list_active_groups_per_lead(session, make_lead, make_email):
    jane = await make_lead(client_name="Jane", email="jane@acme.com")
    bob = await make_lead(client_name="Bob", email="bob@acme.com")
    first = await _notify(session, jane, make_email, "j-1")
    second = await _notify(session, jane, make_email, "j-2")
    await _notify(session, bob, make_email, "b-1")

    groups = await NotificationService(session).list_active()

    assert len(groups) == 2
    jane_group = next(g for g in groups if g.lead_id == jane.id)
    assert jane_group.count == 2
    assert set(jane_group.notification_ids) == {first.id, second.id}
    assert jane_group.lead_name == "Jane"


@pytest.mark.asyncio
async def test_members_only_see_assigned_leads(session, make_user, make_lead, make_email):
    member = await make_user(username="member", role=Roles.MEMBER)
    mine = await make_lead(client_name="Mine", email="mine@acme.com", assigned_to=member.id)
    other = await make_lead(client_name="Other", email="other@acme.com")
    await _notify(session, mine, make_email, "m-1")
    await _notify(session, other, make_email, "o-1")

    groups = await NotificationService(session).list_active(member)

    assert [g.lead_id for g in groups] == [mine.id]


@pytest.mark.asyncio
async def test_dismiss_for_lead(session, make_lead, make_email):
    lead = await make_lead()
    await _notify(session, lead, make_email, "n-1")
    await _notify(session, lead, make_email, "n-2")
    service = NotificationService(session)

    dismissed = await service.dismiss_for_lead(lead.id)

    assert dismissed == 2
    assert await service.list_active() == []


@pytest.mark.asyncio
async def test_dismiss_unknown_notification_is_404(session):
    with pytest.raises(HTTPException) as exc:
        await NotificationService(session).dismiss(uuid.uuid4())
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_purge_removes_only_old_dismissed(session, make_lead):
    lead = await make_lead()
    old = Notification(
        lead_id=lead.id, lead_name="Jane", from_email="jane@acme.com", subject="old",
        dismissed=True, dismissed_at=datetime.utcnow() - timedelta(days=8)
    )
    recent = Notification(
        lead_id=lead.id, lead_name="Jane", from_email="jane@acme.com", subject="recent",
        dismissed=True, dismissed_at=datetime.utcnow() - timedelta(days=1)
    )
    active = Notification(lead_id=lead.id, lead_name="Jane", from_email="jane@acme.com", subject="active")
    session.add_all([old, recent, active])
    await session.commit()

    purged = await NotificationService(session).purge_dismissed(7)

    assert purged == 1
    remaining = await NotificationRepository(session).list()
    assert {n.subject for n in remaining} == {"recent", "active"}


@pytest.mark.asyncio
async def test_backfill_creates_missing_notifications(session, make_lead, make_email):
    lead = await make_lead()
    await make_email(lead, direction=Direction.RECEIVED, message_id="r-1", from_email=lead.email)
    await make_email(lead, direction=Direction.SENT, message_id="s-1")
    service = NotificationService(session)

    created = await service.backfill_missing(datetime.utcnow() - timedelta(hours=1))

    assert created == 1
    assert await service.backfill_missing(datetime.utcnow() - timedelta(hours=1)) == 0
