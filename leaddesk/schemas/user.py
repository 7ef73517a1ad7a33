"""
User schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, field_validator

from leaddesk.models.user import Roles


class UserCreate(BaseModel):
    """Admin creates a user."""
    username: str
    email: EmailStr
    password: str
    role: str = Roles.MEMBER
    can_see_inventory: bool = False

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        if v not in Roles.ALL:
            raise ValueError(f"role must be one of: {', '.join(Roles.ALL)}")
        return v


class UserUpdate(BaseModel):
    """Admin updates a user's profile or permissions."""
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None
    can_see_inventory: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def check_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in Roles.ALL:
            raise ValueError(f"role must be one of: {', '.join(Roles.ALL)}")
        return v


class UserResponse(BaseModel):
    """User details response."""
    id: uuid.UUID
    username: str
    email: str
    role: str
    can_see_inventory: bool
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
