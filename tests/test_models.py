"""
Table definition tests
"""
from datetime import datetime

import pytest
from sqlalchemy import DateTime

from leaddesk.models import User, Lead, Company, EmailMessage, Notification, InventoryItem


@pytest.mark.parametrize("model", [User, Lead, Company, EmailMessage, Notification, InventoryItem])
def test_timestamp_columns_store_naive_utc(model):
    columns = [c for c in model.__table__.columns if isinstance(c.type, DateTime)]

    assert columns
    for column in columns:
        assert type(column.type) is DateTime, column.name
        assert column.type.timezone is False, column.name


@pytest.mark.asyncio
async def test_naive_timestamps_round_trip(session, make_lead, make_email):
    lead = await make_lead()
    email = await make_email(lead, sent_at=datetime(2026, 3, 1, 10, 0))

    await session.refresh(email)

    assert email.sent_at == datetime(2026, 3, 1, 10, 0)
    assert email.sent_at.tzinfo is None
    assert lead.created_at.tzinfo is None
