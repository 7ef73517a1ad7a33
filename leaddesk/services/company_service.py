"""
Company service.
"""
import uuid
import logging
from typing import List

from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.core.exceptions import raise_not_found, raise_already_exists
from leaddesk.repositories.lead_repo import LeadRepository, CompanyRepository
from leaddesk.models.lead import Company, Lead
from leaddesk.schemas.company import CompanyCreate, CompanyUpdate, CompanyResponse

logger = logging.getLogger(__name__)


class CompanyService:
    """Service for company operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.company_repo = CompanyRepository(session)
        self.lead_repo = LeadRepository(session)

    async def create(self, company_data: CompanyCreate) -> Company:
        name = company_data.name.strip()
        if await self.company_repo.get_by_name(name):
            raise_already_exists("Company", "name", name)
        return await self.company_repo.create({"name": name})

    async def get(self, company_id: uuid.UUID) -> Company:
        company = await self.company_repo.get(company_id)
        if not company:
            raise_not_found("Company", str(company_id))
        return company

    async def list(self) -> List[CompanyResponse]:
        """Companies by name, with their lead counts."""
        companies = await self.company_repo.list_by_name()
        counts = await self.lead_repo.count_by_company()
        return [
            CompanyResponse.model_validate(company).model_copy(update={"lead_count": counts.get(company.id, 0)})
            for company in companies
        ]

    async def list_leads(self, company_id: uuid.UUID) -> List[Lead]:
        await self.get(company_id)
        return await self.lead_repo.list_by_company(company_id)

    async def update(self, company_id: uuid.UUID, company_data: CompanyUpdate) -> Company:
        company = await self.get(company_id)
        update_data = company_data.model_dump(exclude_unset=True)
        if update_data.get("name"):
            update_data["name"] = update_data["name"].strip()
            existing = await self.company_repo.get_by_name(update_data["name"])
            if existing and existing.id != company.id:
                raise_already_exists("Company", "name", update_data["name"])
        return await self.company_repo.update(company_id, update_data)

    async def delete(self, company_id: uuid.UUID) -> bool:
        """Delete a company. Its leads are kept and detached."""
        company = await self.get(company_id)
        detached = await self.lead_repo.detach_company(company_id)
        await self.session.flush()
        await self.session.delete(company)
        await self.session.commit()
        logger.info(f"Company '{company.name}' deleted, {detached} leads detached")
        return True
