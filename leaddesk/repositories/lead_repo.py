"""
Lead and Company repositories with search and bulk operations.
"""
import uuid
from typing import Optional, List
from datetime import datetime

from sqlmodel import select, or_, col
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from leaddesk.models.lead import Lead, Company
from leaddesk.repositories.base import BaseRepository
from leaddesk.schemas.lead import LeadFilter
from leaddesk.core.pagination import paginate_query


class LeadRepository(BaseRepository[Lead]):
    """Repository for Lead operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Lead, session)

    async def search(
        self,
        filters: Optional[LeadFilter] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """Search leads with filtering, newest first."""
        query = select(Lead)

        if filters:
            if filters.status:
                query = query.where(Lead.status == filters.status)
            if filters.company_id:
                query = query.where(Lead.company_id == filters.company_id)
            if filters.assigned_to:
                query = query.where(Lead.assigned_to == filters.assigned_to)
            if filters.search:
                search_term = f"%{filters.search}%"
                query = query.where(
                    or_(
                        col(Lead.client_name).ilike(search_term),
                        col(Lead.email).ilike(search_term),
                        col(Lead.subject).ilike(search_term)
                    )
                )

        query = query.order_by(col(Lead.created_at).desc())
        return await paginate_query(self.session, query, page, limit)

    async def get_first_by_email(self, email: str) -> Optional[Lead]:
        """
        Oldest lead whose email equals the address exactly.
        Duplicates are allowed, so the earliest created one wins.
        """
        query = (
            select(Lead)
            .where(Lead.email == email)
            .order_by(col(Lead.created_at), col(Lead.id))
        )
        result = await self.session.exec(query)
        return result.first()

    async def list_by_company(self, company_id: uuid.UUID) -> List[Lead]:
        query = select(Lead).where(Lead.company_id == company_id).order_by(col(Lead.created_at).desc())
        result = await self.session.exec(query)
        return result.all()

    async def count_by_company(self) -> dict:
        """Map of company id to number of leads."""
        query = (
            select(Lead.company_id, func.count())
            .where(col(Lead.company_id).is_not(None))
            .group_by(Lead.company_id)
        )
        result = await self.session.exec(query)
        return {company_id: total for company_id, total in result.all()}

    async def detach_company(self, company_id: uuid.UUID) -> int:
        """Clear company_id on every lead of the company. Does not commit."""
        leads = await self.list_by_company(company_id)
        now = datetime.utcnow()
        for lead in leads:
            lead.company_id = None
            lead.updated_at = now
            self.session.add(lead)
        return len(leads)

    async def unassign_user(self, user_id: uuid.UUID) -> int:
        """Clear the assignment of every lead assigned to the user. Does not commit."""
        result = await self.session.exec(select(Lead).where(Lead.assigned_to == user_id))
        leads = result.all()
        for lead in leads:
            lead.assigned_to = None
            lead.assigned_at = None
            lead.assigned_by = None
            self.session.add(lead)
        return len(leads)

    async def bulk_create(self, leads_data: List[dict]) -> List[Lead]:
        """Create multiple leads at once."""
        leads = []
        for data in leads_data:
            lead = Lead(**data)
            self.session.add(lead)
            leads.append(lead)

        await self.session.commit()
        for lead in leads:
            await self.session.refresh(lead)

        return leads

    async def update_status(self, lead_id: uuid.UUID, status: str) -> bool:
        """Update lead status."""
        lead = await self.get(lead_id)
        if lead:
            lead.status = status
            lead.updated_at = datetime.utcnow()
            self.session.add(lead)
            await self.session.commit()
            return True
        return False

    async def assign(
        self,
        lead_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        assigned_by: uuid.UUID
    ) -> Optional[Lead]:
        """Assign a lead to a user, or unassign it when user_id is None."""
        lead = await self.get(lead_id)
        if not lead:
            return None

        now = datetime.utcnow()
        lead.assigned_to = user_id
        lead.assigned_at = now if user_id else None
        lead.assigned_by = assigned_by if user_id else None
        lead.updated_at = now

        self.session.add(lead)
        await self.session.commit()
        await self.session.refresh(lead)
        return lead


class CompanyRepository(BaseRepository[Company]):
    """Repository for Company operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Company, session)

    async def get_by_name(self, name: str) -> Optional[Company]:
        """Case-insensitive lookup used when importing spreadsheets."""
        query = select(Company).where(func.lower(Company.name) == name.strip().lower())
        result = await self.session.exec(query)
        return result.first()

    async def list_by_name(self) -> List[Company]:
        result = await self.session.exec(select(Company).order_by(col(Company.name)))
        return result.all()
