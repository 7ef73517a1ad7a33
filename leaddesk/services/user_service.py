"""
User service - admin-managed users and permissions.
"""
import uuid
import logging
from typing import List

from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.core.exceptions import raise_not_found, raise_already_exists, raise_bad_request
from leaddesk.core.security import get_password_hash
from leaddesk.repositories.lead_repo import LeadRepository
from leaddesk.repositories.user_repo import UserRepository
from leaddesk.models.user import User, Roles
from leaddesk.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service for user operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)

    async def get(self, user_id: uuid.UUID) -> User:
        """Get user profile."""
        user = await self.user_repo.get(user_id)
        if not user:
            raise_not_found("User", str(user_id))
        return user

    async def list(self) -> List[User]:
        return await self.user_repo.list_by_username()

    async def create(self, user_data: UserCreate) -> User:
        if await self.user_repo.get_by_field("username", user_data.username):
            raise_already_exists("User", "username", user_data.username)
        if await self.user_repo.get_by_email(user_data.email):
            raise_already_exists("User", "email", user_data.email)

        data = user_data.model_dump(exclude={"password"})
        data["password_hash"] = get_password_hash(user_data.password)
        if data["role"] == Roles.ADMIN:
            data["can_see_inventory"] = True

        user = await self.user_repo.create(data)
        logger.info(f"User '{user.username}' created with role {user.role}")
        return user

    async def update(self, actor: User, user_id: uuid.UUID, user_data: UserUpdate) -> User:
        user = await self.get(user_id)
        update_data = user_data.model_dump(exclude_unset=True)

        if user.id == actor.id and (
            update_data.get("role") == Roles.MEMBER or update_data.get("is_active") is False
        ):
            raise_bad_request("You cannot demote or deactivate yourself")

        if "username" in update_data and update_data["username"] != user.username:
            if await self.user_repo.get_by_field("username", update_data["username"]):
                raise_already_exists("User", "username", update_data["username"])
        if "email" in update_data and update_data["email"] != user.email:
            if await self.user_repo.get_by_email(update_data["email"]):
                raise_already_exists("User", "email", update_data["email"])

        password = update_data.pop("password", None)
        if password:
            update_data["password_hash"] = get_password_hash(password)

        return await self.user_repo.update(user_id, update_data)

    async def delete(self, actor: User, user_id: uuid.UUID) -> bool:
        if user_id == actor.id:
            raise_bad_request("You cannot delete yourself")
        user = await self.get(user_id)
        await LeadRepository(self.session).unassign_user(user.id)
        await self.session.flush()
        deleted = await self.user_repo.delete(user.id)
        logger.info(f"User '{user.username}' deleted")
        return deleted
