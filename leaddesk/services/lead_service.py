"""
Lead service - lead management, assignment and spreadsheet import.
"""
import uuid
import logging
from datetime import datetime
from typing import Optional, List

from pydantic import TypeAdapter, EmailStr, ValidationError as PydanticValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.core.exceptions import raise_not_found, raise_forbidden
from leaddesk.core.spreadsheet import read_rows, pick
from leaddesk.repositories.lead_repo import LeadRepository, CompanyRepository
from leaddesk.repositories.email_repo import EmailRepository
from leaddesk.repositories.notification_repo import NotificationRepository
from leaddesk.repositories.user_repo import UserRepository
from leaddesk.models.lead import Lead, LeadStatus
from leaddesk.models.user import User
from leaddesk.schemas.lead import LeadCreate, LeadUpdate, LeadFilter, LeadImportResponse

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


class LeadService:
    """Service for lead operations. Members only see leads assigned to them."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.lead_repo = LeadRepository(session)
        self.company_repo = CompanyRepository(session)
        self.email_repo = EmailRepository(session)
        self.notification_repo = NotificationRepository(session)
        self.user_repo = UserRepository(session)

    async def create(self, user: User, lead_data: LeadCreate) -> Lead:
        """Create a new lead. Leads created by members are assigned to them."""
        data = lead_data.model_dump()
        data["source"] = "manual"
        data["status"] = LeadStatus.NEW

        if data.get("company_id") and not await self.company_repo.get(data["company_id"]):
            raise_not_found("Company", str(data["company_id"]))

        if not user.is_admin:
            data["assigned_to"] = user.id
            data["assigned_by"] = user.id
            data["assigned_at"] = datetime.utcnow()

        lead = await self.lead_repo.create(data)
        logger.info(f"Lead '{lead.client_name}' created")
        return lead

    async def get(self, user: User, lead_id: uuid.UUID) -> Lead:
        """Get a lead by ID."""
        lead = await self.lead_repo.get(lead_id)
        if not lead:
            raise_not_found("Lead", str(lead_id))
        if not user.is_admin and lead.assigned_to != user.id:
            raise_forbidden("This lead is not assigned to you")
        return lead

    async def list(
        self,
        user: User,
        filters: Optional[LeadFilter] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """List leads with filtering and pagination."""
        filters = filters or LeadFilter()
        if not user.is_admin:
            filters.assigned_to = user.id
        return await self.lead_repo.search(filters, page, limit)

    async def update(self, user: User, lead_id: uuid.UUID, lead_data: LeadUpdate) -> Lead:
        """Update a lead."""
        await self.get(user, lead_id)

        update_data = lead_data.model_dump(exclude_unset=True)
        if update_data.get("company_id") and not await self.company_repo.get(update_data["company_id"]):
            raise_not_found("Company", str(update_data["company_id"]))

        return await self.lead_repo.update(lead_id, update_data)

    async def update_status(self, user: User, lead_id: uuid.UUID, status: str) -> Lead:
        lead = await self.get(user, lead_id)
        await self.lead_repo.update_status(lead_id, status)
        await self.session.refresh(lead)
        return lead

    async def assign(self, actor: User, lead_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> Lead:
        """Assign a lead to a user (admin only, enforced by the route)."""
        if not await self.lead_repo.get(lead_id):
            raise_not_found("Lead", str(lead_id))
        if user_id and not await self.user_repo.get(user_id):
            raise_not_found("User", str(user_id))
        return await self.lead_repo.assign(lead_id, user_id, actor.id)

    async def delete(self, user: User, lead_id: uuid.UUID) -> bool:
        """Delete a lead together with its emails and notifications."""
        lead = await self.get(user, lead_id)
        await self._delete_with_correspondence(lead)
        await self.session.commit()
        logger.info(f"Lead '{lead.client_name}' deleted")
        return True

    async def bulk_delete(self, user: User, lead_ids: List[uuid.UUID]) -> int:
        deleted = 0
        for lead_id in lead_ids:
            lead = await self.lead_repo.get(lead_id)
            if not lead or (not user.is_admin and lead.assigned_to != user.id):
                continue
            await self._delete_with_correspondence(lead)
            deleted += 1
        await self.session.commit()
        logger.info(f"Bulk deleted {deleted} leads")
        return deleted

    async def _delete_with_correspondence(self, lead: Lead) -> None:
        # Notifications reference emails, so they go first
        await self.notification_repo.delete_by_lead(lead.id)
        await self.email_repo.delete_by_lead(lead.id)
        await self.session.flush()
        await self.session.delete(lead)

    async def import_file(self, user: User, filename: str, content: bytes) -> LeadImportResponse:
        """
        Import leads from an .xlsx or .csv upload.
        Rows need a client name and a valid email; failing rows are reported
        and the rest are imported.
        """
        rows = read_rows(filename, content)

        leads = []
        failed = 0
        errors = []
        companies = {}

        for row_num, row in rows:
            client_name = pick(row, "Client Name", "Name", "client_name")
            email = pick(row, "Email", "email")
            if not client_name or not email:
                failed += 1
                errors.append({"row": row_num, "error": "Client Name and Email are required"})
                continue

            try:
                email = str(_email_adapter.validate_python(email))
            except PydanticValidationError:
                failed += 1
                errors.append({"row": row_num, "error": f"Invalid email '{email}'"})
                continue

            lead_data = {
                "client_name": client_name,
                "email": email,
                "lead_details": pick(row, "Lead Details", "Lead", "Description", "lead_details") or None,
                "phone": pick(row, "Phone", "phone") or None,
                "subject": pick(row, "Subject", "subject") or None,
                "status": LeadStatus.NEW,
                "source": "import"
            }

            company_name = pick(row, "Company", "company")
            if company_name:
                key = company_name.lower()
                if key not in companies:
                    company = await self.company_repo.get_by_name(company_name)
                    if not company:
                        company = await self.company_repo.create({"name": company_name})
                    companies[key] = company.id
                lead_data["company_id"] = companies[key]

            if not user.is_admin:
                lead_data["assigned_to"] = user.id
                lead_data["assigned_by"] = user.id
                lead_data["assigned_at"] = datetime.utcnow()

            leads.append(lead_data)

        if leads:
            await self.lead_repo.bulk_create(leads)
        logger.info(f"Imported {len(leads)} leads from {filename} ({failed} failed)")

        return LeadImportResponse(
            total_rows=len(rows),
            imported=len(leads),
            failed=failed,
            errors=errors[:50]  # Limit errors returned
        )
