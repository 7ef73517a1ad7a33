"""
Authentication API routes.
"""
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.services.auth_service import AuthService
from leaddesk.schemas.auth import LoginRequest, TokenResponse, ChangePasswordRequest
from leaddesk.schemas.user import UserResponse
from leaddesk.schemas.common import MessageResponse
from leaddesk.api.deps import get_current_user
from leaddesk.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    session: AsyncSession = Depends(get_session)
):
    """Login with username or email and get an access token."""
    auth_service = AuthService(session)
    return await auth_service.login(request.username, request.password)


# Form-encoded login for the OpenAPI "Authorize" button
@router.post("/token", response_model=TokenResponse)
async def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session)
):
    """Login (form variant of /login)."""
    auth_service = AuthService(session)
    return await auth_service.login(form_data.username, form_data.password)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the logged-in user."""
    return current_user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """Change password for the logged-in user."""
    auth_service = AuthService(session)
    await auth_service.change_password(
        current_user.id,
        request.current_password,
        request.new_password
    )
    return MessageResponse(message="Password changed successfully")
