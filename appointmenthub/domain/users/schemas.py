"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...models import USER_ROLES


def _check_role(v: str) -> str:
    role = (v or "").upper()
    if role not in USER_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}")
    return role


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    role: str
    password: str = Field(min_length=6)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class UserUpdate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _check_role(v)


class UserStatusUpdate(BaseModel):
    isActive: bool


class UserResponse(BaseModel):
    id: int
    tenantId: Optional[int] = None
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    isActive: bool
    createdAt: Optional[datetime] = None
