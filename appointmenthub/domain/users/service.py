"""User service - Business logic for tenant user management"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, User
from ...security_utils import hash_password_bcrypt
from .repository import UserRepository
from .schemas import UserCreate, UserResponse, UserStatusUpdate, UserUpdate

logger = logging.getLogger(__name__)


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        tenantId=user.tenant_id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        isActive=user.is_active,
        createdAt=user.created_at,
    )


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def list_users(
        self, tenant_id: int, current_user: User, role: Optional[str], include_inactive: bool
    ) -> list[User]:
        # Non-admins only see active users unless they ask for the rest
        active_only = current_user.role != ROLE_ADMIN and not include_inactive
        return self.repo.list_users(self.db, tenant_id, role, active_only)

    def _get_or_404(self, user_id: int, tenant_id: int) -> User:
        user = self.repo.get_in_tenant(self.db, user_id, tenant_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def create_user(self, data: UserCreate, current_user: User) -> User:
        if self.repo.get_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="User with this email already exists")

        user = User(
            tenant_id=current_user.tenant_id,
            name=data.name,
            email=data.email.lower(),
            phone=data.phone,
            role=data.role,
            password_hash=hash_password_bcrypt(data.password),
            is_active=True,
        )
        user = self.repo.create(self.db, user)
        logger.info(f"✅ User {user.id} ({user.role}) created by admin {current_user.id}")
        return user

    def update_user(self, user_id: int, data: UserUpdate, current_user: User) -> User:
        user = self._get_or_404(user_id, current_user.tenant_id)

        email = data.email.lower()
        if email != user.email and self.repo.get_by_email(self.db, email):
            raise HTTPException(status_code=409, detail="Email is already taken")

        user.name = data.name
        user.email = email
        user.phone = data.phone
        user.role = data.role
        return self.repo.save(self.db, user)

    def set_status(self, user_id: int, data: UserStatusUpdate, current_user: User) -> User:
        user = self._get_or_404(user_id, current_user.tenant_id)

        if user.id == current_user.id and not data.isActive:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

        user.is_active = data.isActive
        logger.info(f"🔁 User {user.id} active={data.isActive} (by {current_user.id})")
        return self.repo.save(self.db, user)

    def delete_user(self, user_id: int, current_user: User) -> dict:
        user = self._get_or_404(user_id, current_user.tenant_id)

        if user.id == current_user.id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")

        self.repo.delete_with_bookings(self.db, user)
        logger.info(f"🗑️ User {user_id} deleted by admin {current_user.id}")
        return {"message": "User deleted successfully"}
