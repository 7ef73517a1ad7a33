"""
Reply notification API routes.
"""
import uuid
from typing import List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.services.notification_service import NotificationService
from leaddesk.services.lead_service import LeadService
from leaddesk.schemas.notification import LeadNotificationGroup, DismissResponse
from leaddesk.api.deps import get_current_user
from leaddesk.models.user import User

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/", response_model=List[LeadNotificationGroup])
async def list_notifications(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Active reply notifications, one entry per lead."""
    notification_service = NotificationService(session)
    return await notification_service.list_active(current_user)


@router.post("/clear", response_model=DismissResponse)
async def clear_notifications(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Dismiss every active notification visible to the user."""
    notification_service = NotificationService(session)
    dismissed = await notification_service.dismiss_all(current_user)
    return DismissResponse(dismissed=dismissed)


@router.post("/dismiss/{lead_id}", response_model=DismissResponse)
async def dismiss_lead_notifications(
    lead_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Dismiss all notifications of a lead."""
    await LeadService(session).get(current_user, lead_id)

    notification_service = NotificationService(session)
    dismissed = await notification_service.dismiss_for_lead(lead_id)
    return DismissResponse(dismissed=dismissed)


@router.post("/{notification_id}/dismiss", response_model=DismissResponse)
async def dismiss_notification(
    notification_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    notification_service = NotificationService(session)
    dismissed = await notification_service.dismiss(notification_id)
    return DismissResponse(dismissed=dismissed)
