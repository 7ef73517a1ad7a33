"""
Email API routes - lead correspondence, manual inbox sync and AI helpers.
"""
import uuid
import asyncio
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.config import settings
from leaddesk.database import get_session
from leaddesk.services.lead_service import LeadService
from leaddesk.services.correspondence_service import CorrespondenceService
from leaddesk.services.email_sync_service import EmailSyncService
from leaddesk.services.ai_service import ai_service
from leaddesk.services.integrations.base import MailProvider
from leaddesk.services.integrations.email import get_mail_provider
from leaddesk.core.exceptions import (
    ExternalServiceError, MailProviderError, raise_external_error, raise_bad_request
)
from leaddesk.schemas.email import (
    EmailResponse, EmailThreadResponse, SyncResponse,
    GenerateReplyRequest, GenerateReplyResponse,
    GrammarFixRequest, GrammarFixResponse
)
from leaddesk.api.deps import get_current_user
from leaddesk.models.user import User

router = APIRouter(prefix="/api/emails", tags=["emails"])
grammar_router = APIRouter(prefix="/api/grammar", tags=["ai"])


@router.post("/sync", response_model=SyncResponse)
async def sync_inbox(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    provider: MailProvider = Depends(get_mail_provider)
):
    """Fetch the mailbox now and attach replies to their leads."""
    if not provider.is_configured():
        raise_bad_request("No mail provider is configured")

    since = datetime.utcnow() - timedelta(hours=settings.EMAIL_POLL_LOOKBACK_HOURS)
    sync_service = EmailSyncService(session, provider)
    try:
        summary = await sync_service.sync(since)
    except MailProviderError as e:
        raise_external_error(e, "Failed to fetch emails, please try again later")

    return SyncResponse(**summary.model_dump())


@router.post("/generate-reply", response_model=GenerateReplyResponse)
async def generate_reply(
    request: GenerateReplyRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Draft the next email to a lead from its conversation history."""
    lead = await LeadService(session).get(current_user, request.lead_id)
    emails = await CorrespondenceService(session).list_for_lead(lead.id)

    lead_data = {
        "client_name": lead.client_name,
        "email": lead.email,
        "lead_details": lead.lead_details
    }
    history = [
        {
            "direction": email.direction,
            "subject": email.subject,
            "body": email.body,
            "sent_at": email.sent_at
        }
        for email in reversed(emails)
    ]

    try:
        draft = await asyncio.to_thread(
            ai_service.draft_reply, lead_data, history, request.current_draft or ""
        )
    except ExternalServiceError as e:
        raise_external_error(e, "Could not generate a reply, please try again later")

    return GenerateReplyResponse(**draft)


@router.get("/{lead_id}", response_model=EmailThreadResponse)
async def list_lead_emails(
    lead_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """All emails exchanged with a lead, newest first."""
    lead = await LeadService(session).get(current_user, lead_id)
    emails = await CorrespondenceService(session).list_for_lead(lead.id)
    return EmailThreadResponse(
        lead_id=lead.id,
        emails=[EmailResponse.model_validate(email) for email in emails]
    )


@grammar_router.post("/fix", response_model=GrammarFixResponse)
async def fix_grammar(
    request: GrammarFixRequest,
    current_user: User = Depends(get_current_user)
):
    """Correct grammar and punctuation of an email draft."""
    result = await asyncio.to_thread(ai_service.fix_grammar, request.text)
    return GrammarFixResponse(**result)
