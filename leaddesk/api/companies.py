"""
Companies API routes.
"""
import uuid
from typing import List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.services.company_service import CompanyService
from leaddesk.schemas.company import CompanyCreate, CompanyUpdate, CompanyResponse
from leaddesk.schemas.lead import LeadResponse
from leaddesk.api.deps import get_current_user, require_admin
from leaddesk.models.user import User

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("/", response_model=List[CompanyResponse])
async def list_companies(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """List companies with their lead counts."""
    company_service = CompanyService(session)
    return await company_service.list()


@router.post("/", response_model=CompanyResponse, status_code=201)
async def create_company(
    company_data: CompanyCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    company_service = CompanyService(session)
    return await company_service.create(company_data)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    company_service = CompanyService(session)
    return await company_service.get(company_id)


@router.get("/{company_id}/leads", response_model=List[LeadResponse])
async def list_company_leads(
    company_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """List the leads of a company."""
    company_service = CompanyService(session)
    leads = await company_service.list_leads(company_id)
    if not current_user.is_admin:
        leads = [lead for lead in leads if lead.assigned_to == current_user.id]
    return leads


@router.patch("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: uuid.UUID,
    company_data: CompanyUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    company_service = CompanyService(session)
    return await company_service.update(company_id, company_data)


@router.delete("/{company_id}", status_code=204)
async def delete_company(
    company_id: uuid.UUID,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Delete a company. Its leads are kept."""
    company_service = CompanyService(session)
    await company_service.delete(company_id)
