"""User router - FastAPI endpoints for user management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles, resolve_tenant_scope
from ...database import get_db
from ...models import ROLE_ADMIN, User
from .schemas import UserCreate, UserResponse, UserStatusUpdate, UserUpdate
from .service import UserService, user_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


@router.get("", response_model=list[UserResponse])
async def get_users(
    role: Optional[str] = Query(None),
    includeInactive: bool = Query(False),
    tenantId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Users of the caller's tenant, optionally filtered by role"""
    tenant_id = resolve_tenant_scope(current_user, tenantId)
    users = service.list_users(tenant_id, current_user, role, includeInactive)
    return [user_to_response(u) for u in users]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
    service: UserService = Depends(get_user_service),
):
    return user_to_response(service.create_user(data, current_user))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
    service: UserService = Depends(get_user_service),
):
    return user_to_response(service.update_user(user_id, data, current_user))


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
    service: UserService = Depends(get_user_service),
):
    """Activate or deactivate a user"""
    return user_to_response(service.set_status(user_id, data, current_user))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
    service: UserService = Depends(get_user_service),
):
    return service.delete_user(user_id, current_user)
