"""
User model with role-based permissions.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Application user.
    Admins see and manage everything; members see the leads assigned to
    them, and the inventory only when granted.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Auth
    username: str = Field(unique=True, index=True)
    email: str = Field(unique=True, index=True)
    password_hash: str

    # Permissions
    role: str = Field(default="member", index=True)  # admin, member
    can_see_inventory: bool = Field(default=False)
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    last_login_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    @property
    def is_admin(self) -> bool:
        return self.role == Roles.ADMIN


class Roles:
    ADMIN = "admin"
    MEMBER = "member"

    ALL = [ADMIN, MEMBER]
