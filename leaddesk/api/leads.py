"""
Leads API routes.
"""
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, UploadFile, File
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.services.lead_service import LeadService
from leaddesk.services.reply_composer import ReplyComposer
from leaddesk.services.integrations.base import MailProvider
from leaddesk.services.integrations.email import get_mail_provider
from leaddesk.core.exceptions import MailProviderError, raise_external_error
from leaddesk.schemas.lead import (
    LeadCreate, LeadUpdate, LeadResponse, LeadFilter, LeadImportResponse,
    LeadStatusUpdate, LeadAssignRequest, LeadBulkDeleteRequest
)
from leaddesk.schemas.email import SendEmailRequest, EmailResponse
from leaddesk.schemas.common import PaginatedResponse
from leaddesk.api.deps import get_current_user, require_admin
from leaddesk.models.user import User

router = APIRouter(prefix="/api/leads", tags=["leads"])


@router.post("/", response_model=LeadResponse, status_code=201)
async def create_lead(
    lead_data: LeadCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Create a new lead."""
    lead_service = LeadService(session)
    return await lead_service.create(current_user, lead_data)


@router.get("/", response_model=PaginatedResponse[LeadResponse])
async def list_leads(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    company_id: Optional[uuid.UUID] = None,
    assigned_to: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """List leads with filtering and pagination."""
    filters = LeadFilter(
        status=status,
        company_id=company_id,
        assigned_to=assigned_to,
        search=search
    )

    lead_service = LeadService(session)
    return await lead_service.list(current_user, filters, page, limit)


@router.post("/import", response_model=LeadImportResponse)
async def import_leads(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Import leads from an .xlsx or .csv file."""
    content = await file.read()

    lead_service = LeadService(session)
    return await lead_service.import_file(current_user, file.filename, content)


@router.post("/bulk-delete")
async def bulk_delete_leads(
    request: LeadBulkDeleteRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Delete several leads with their correspondence."""
    lead_service = LeadService(session)
    deleted = await lead_service.bulk_delete(current_user, request.lead_ids)
    return {"deleted": deleted}


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Get a lead by ID."""
    lead_service = LeadService(session)
    return await lead_service.get(current_user, lead_id)


@router.patch("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: uuid.UUID,
    lead_data: LeadUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Update a lead."""
    lead_service = LeadService(session)
    return await lead_service.update(current_user, lead_id, lead_data)


@router.patch("/{lead_id}/status", response_model=LeadResponse)
async def update_lead_status(
    lead_id: uuid.UUID,
    request: LeadStatusUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Move a lead to another pipeline status."""
    lead_service = LeadService(session)
    return await lead_service.update_status(current_user, lead_id, request.status)


@router.patch("/{lead_id}/assign", response_model=LeadResponse)
async def assign_lead(
    lead_id: uuid.UUID,
    request: LeadAssignRequest,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Assign a lead to a user (admin only)."""
    lead_service = LeadService(session)
    return await lead_service.assign(current_user, lead_id, request.user_id)


@router.delete("/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Delete a lead with its emails and notifications."""
    lead_service = LeadService(session)
    await lead_service.delete(current_user, lead_id)


@router.post("/{lead_id}/send-email", response_model=EmailResponse, status_code=201)
async def send_email(
    lead_id: uuid.UUID,
    request: SendEmailRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    provider: MailProvider = Depends(get_mail_provider)
):
    """Send an email to a lead, threaded onto the latest stored message."""
    lead = await LeadService(session).get(current_user, lead_id)

    composer = ReplyComposer(session)
    try:
        return await composer.send(lead, request.subject, request.body, provider)
    except MailProviderError as e:
        raise_external_error(e, "Failed to send email, please try again later")
