"""
Authentication service - login, password changes and the bootstrap admin.
"""
import uuid
import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.config import settings
from leaddesk.core.security import get_password_hash, verify_password, create_access_token
from leaddesk.core.exceptions import raise_unauthorized, raise_not_found
from leaddesk.repositories.user_repo import UserRepository
from leaddesk.models.user import User, Roles

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)

    async def login(self, identifier: str, password: str) -> dict:
        """Authenticate by username or email and return an access token."""
        user = await self.user_repo.get_by_login(identifier.strip())
        if not user:
            raise_unauthorized("Incorrect username or password")

        if not verify_password(password, user.password_hash):
            raise_unauthorized("Incorrect username or password")

        if not user.is_active:
            raise_unauthorized("User account is deactivated")

        token_data = {
            "sub": user.username,
            "user_id": str(user.id),
            "role": user.role
        }
        access_token = create_access_token(token_data)

        await self.user_repo.update_last_login(user.id)
        logger.info(f"User '{user.username}' logged in")

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        }

    async def change_password(
        self,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str
    ) -> bool:
        """Change password for logged-in user."""
        user = await self.user_repo.get(user_id)
        if not user:
            raise_not_found("User")

        if not verify_password(current_password, user.password_hash):
            raise_unauthorized("Current password is incorrect")

        password_hash = get_password_hash(new_password)
        await self.user_repo.update_password(user_id, password_hash)
        return True

    async def ensure_admin(self) -> Optional[User]:
        """
        Create the admin from ADMIN_* settings when no user exists yet.
        Returns the created user, or None when nothing was done.
        """
        if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
            return None
        if await self.user_repo.count() > 0:
            return None

        user = await self.user_repo.create({
            "username": settings.ADMIN_USERNAME,
            "email": settings.ADMIN_EMAIL,
            "password_hash": get_password_hash(settings.ADMIN_PASSWORD),
            "role": Roles.ADMIN,
            "can_see_inventory": True
        })
        logger.info(f"Bootstrap admin '{user.username}' created")
        return user
