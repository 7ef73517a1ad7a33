"""
User management API routes (admin only).
"""
import uuid
from typing import List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.services.user_service import UserService
from leaddesk.schemas.user import UserCreate, UserUpdate, UserResponse
from leaddesk.api.deps import require_admin
from leaddesk.models.user import User

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/", response_model=List[UserResponse])
async def list_users(
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """List all users."""
    user_service = UserService(session)
    return await user_service.list()


@router.post("/", response_model=UserResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Create a user."""
    user_service = UserService(session)
    return await user_service.create(user_data)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    user_service = UserService(session)
    return await user_service.get(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    user_data: UserUpdate,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Update a user's profile, role or permissions."""
    user_service = UserService(session)
    return await user_service.update(current_user, user_id, user_data)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    current_user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Delete a user. Their leads become unassigned."""
    user_service = UserService(session)
    await user_service.delete(current_user, user_id)
