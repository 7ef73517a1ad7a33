"""
User repository.
"""
import uuid
from typing import Optional, List
from datetime import datetime

from sqlmodel import select, or_, col
from sqlmodel.ext.asyncio.session import AsyncSession

from leaddesk.models.user import User
from leaddesk.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        query = select(User).where(User.email == email)
        result = await self.session.exec(query)
        return result.first()

    async def get_by_login(self, identifier: str) -> Optional[User]:
        """Get user by username or email."""
        query = select(User).where(or_(User.username == identifier, User.email == identifier))
        result = await self.session.exec(query)
        return result.first()

    async def list_by_username(self) -> List[User]:
        result = await self.session.exec(select(User).order_by(col(User.username)))
        return result.all()

    async def update_last_login(self, user_id: uuid.UUID) -> None:
        """Update user's last login timestamp."""
        user = await self.get(user_id)
        if user:
            user.last_login_at = datetime.utcnow()
            self.session.add(user)
            await self.session.commit()

    async def update_password(self, user_id: uuid.UUID, password_hash: str) -> bool:
        """Update user's password."""
        user = await self.get(user_id)
        if user:
            user.password_hash = password_hash
            user.updated_at = datetime.utcnow()
            self.session.add(user)
            await self.session.commit()
            return True
        return False
