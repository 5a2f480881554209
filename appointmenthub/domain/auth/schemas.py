"""Auth schemas"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ..users.schemas import UserResponse


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    tenantSlug: Optional[str] = None


class LoginResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    user: UserResponse
