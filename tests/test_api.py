"""
API route tests
"""
import pytest
from fastapi import status

from leaddesk.core.exceptions import MailProviderError
from leaddesk.models import Roles, LeadStatus
from leaddesk.services.integrations.email import MockMailProvider, set_mail_provider
from leaddesk.services.mail_headers import InboundEmail


class ThrottledProvider(MockMailProvider):
    async def send(self, to, subject, body, context=None):
        raise MailProviderError("Microsoft Graph", "Too many requests", 429)


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "healthy"
    assert response.json()["mail_provider"] == "mock"


@pytest.mark.asyncio
async def test_login(client, make_user):
    await make_user(username="admin", email="admin@acme.com")

    response = await client.post("/api/auth/login", json={"username": "admin", "password": "secret123"})
    assert response.status_code == status.HTTP_200_OK
    token = response.json()["access_token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["username"] == "admin"


@pytest.mark.asyncio
async def test_login_by_email_with_wrong_password(client, make_user):
    await make_user(username="admin", email="admin@acme.com")

    response = await client.post("/api/auth/login", json={"username": "admin@acme.com", "password": "nope"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_unauthenticated_request(client):
    response = await client.get("/api/leads/")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_create_and_list_leads(client, make_user, auth_headers):
    admin = await make_user()
    headers = auth_headers(admin)

    created = await client.post("/api/leads/", headers=headers, json={
        "client_name": "Jane Doe",
        "email": "jane@acme.com",
        "subject": "Flooring quote"
    })
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["status"] == LeadStatus.NEW

    listed = await client.get("/api/leads/", headers=headers, params={"search": "jane"})
    assert listed.status_code == status.HTTP_200_OK
    assert listed.json()["total"] == 1
    assert listed.json()["items"][0]["email"] == "jane@acme.com"


@pytest.mark.asyncio
async def test_member_cannot_open_unassigned_lead(client, make_user, make_lead, auth_headers):
    member = await make_user(username="member", role=Roles.MEMBER)
    lead = await make_lead()

    response = await client.get(f"/api/leads/{lead.id}", headers=auth_headers(member))
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_member_cannot_manage_users(client, make_user, auth_headers):
    member = await make_user(username="member", role=Roles.MEMBER)

    response = await client.get("/api/users/", headers=auth_headers(member))
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_inventory_requires_permission(client, make_user, auth_headers):
    member = await make_user(username="member", role=Roles.MEMBER)
    stocker = await make_user(username="stocker", role=Roles.MEMBER, can_see_inventory=True)

    denied = await client.get("/api/inventory/", headers=auth_headers(member))
    allowed = await client.get("/api/inventory/", headers=auth_headers(stocker))

    assert denied.status_code == status.HTTP_403_FORBIDDEN
    assert allowed.status_code == status.HTTP_200_OK


@pytest.mark.asyncio
async def test_send_sync_and_notify(client, make_user, make_lead, auth_headers, provider):
    """Send an email, receive the reply through sync, then dismiss its notification"""
    admin = await make_user()
    headers = auth_headers(admin)
    lead = await make_lead(subject="Flooring quote")

    sent = await client.post(f"/api/leads/{lead.id}/send-email", headers=headers, json={"body": "Hi Jane"})
    assert sent.status_code == status.HTTP_201_CREATED
    assert sent.json()["subject"] == "Flooring quote"
    assert len(provider.sent) == 1

    provider.deliver(InboundEmail(
        sender_address=lead.email,
        subject="Re: Flooring quote",
        provider_message_id="in-1",
        provider_thread_id=sent.json()["conversation_id"],
        message_id_header="<reply-1@acme.com>",
        in_reply_to_header=sent.json()["message_id_header"],
        body_text="Price per box?"
    ))

    synced = await client.post("/api/emails/sync", headers=headers)
    assert synced.status_code == status.HTTP_200_OK
    assert synced.json()["saved"] == 1

    thread = await client.get(f"/api/emails/{lead.id}", headers=headers)
    assert [e["direction"] for e in thread.json()["emails"]] == ["received", "sent"]

    feed = await client.get("/api/notifications/", headers=headers)
    assert len(feed.json()) == 1
    assert feed.json()[0]["lead_id"] == str(lead.id)

    dismissed = await client.post(f"/api/notifications/dismiss/{lead.id}", headers=headers)
    assert dismissed.json()["dismissed"] == 1

    feed = await client.get("/api/notifications/", headers=headers)
    assert feed.json() == []


@pytest.mark.asyncio
async def test_throttled_send_returns_503(client, make_user, make_lead, auth_headers):
    admin = await make_user()
    lead = await make_lead()
    set_mail_provider(ThrottledProvider())

    response = await client.post(f"/api/leads/{lead.id}/send-email", headers=auth_headers(admin), json={"body": "Hi"})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    thread = await client.get(f"/api/emails/{lead.id}", headers=auth_headers(admin))
    assert thread.json()["emails"] == []


@pytest.mark.asyncio
async def test_grammar_fix_without_ai_returns_input(client, make_user, auth_headers):
    admin = await make_user()

    response = await client.post("/api/grammar/fix", headers=auth_headers(admin), json={"text": "helo there"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"text": "helo there", "suggestions": []}


@pytest.mark.asyncio
async def test_delete_lead_removes_correspondence(client, make_user, make_lead, make_email, auth_headers):
    admin = await make_user()
    lead = await make_lead()
    await make_email(lead)

    deleted = await client.delete(f"/api/leads/{lead.id}", headers=auth_headers(admin))
    assert deleted.status_code == status.HTTP_204_NO_CONTENT

    missing = await client.get(f"/api/emails/{lead.id}", headers=auth_headers(admin))
    assert missing.status_code == status.HTTP_404_NOT_FOUND
