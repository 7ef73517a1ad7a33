"""
API dependencies - shared across all routes.
"""
import uuid

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.database import get_session
from leaddesk.config import settings
from leaddesk.core.security import verify_token
from leaddesk.core.exceptions import raise_unauthorized, raise_forbidden
from leaddesk.models.user import User
from leaddesk.repositories.user_repo import UserRepository


oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session)
) -> User:
    """Get current authenticated user from JWT token."""
    payload = verify_token(token)
    if not payload:
        raise_unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise_unauthorized("Could not validate credentials")

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise_unauthorized("Could not validate credentials")

    user_repo = UserRepository(session)
    user = await user_repo.get(user_uuid)

    if not user:
        raise_unauthorized("User not found")

    if not user.is_active:
        raise_unauthorized("User account is deactivated")

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Current user, must be an admin."""
    if not current_user.is_admin:
        raise_forbidden("Admin access required")
    return current_user


async def require_inventory_access(current_user: User = Depends(get_current_user)) -> User:
    """Current user, must be an admin or a member granted inventory access."""
    if not (current_user.is_admin or current_user.can_see_inventory):
        raise_forbidden("Inventory access has not been granted to you")
    return current_user
