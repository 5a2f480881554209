import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import ROLE_ADMIN, User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _user_from_token(token: str, db: Session) -> User:
    payload = verify_jwt_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired session token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid session token") from e

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Token references missing user {user_id}")
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        logger.warning(f"🚫 Inactive user {user_id} attempted access")
        raise HTTPException(status_code=403, detail="Account is deactivated")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer session token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    return _user_from_token(credentials.credentials, db)


def require_roles(*roles: str):
    """
    Create a dependency that only lets users with one of the given roles through

    Example usage:
        @router.post("/users")
        async def create_user(current_user: User = Depends(require_roles("ADMIN"))):
            ...
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            logger.warning(
                f"🚫 User {current_user.id} with role {current_user.role} denied (requires {roles})"
            )
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user

    return role_checker


def get_request_tenant_id(request: Request) -> int:
    """Tenant resolved by the tenant middleware for public endpoints"""
    tenant_id = getattr(request.state, "tenant_id", None)
    if not tenant_id:
        raise HTTPException(status_code=400, detail="Tenant context required")
    return tenant_id


def get_optional_request_tenant_id(request: Request) -> Optional[int]:
    return getattr(request.state, "tenant_id", None)


def resolve_tenant_scope(current_user: User, requested_tenant_id: Optional[int] = None) -> int:
    """
    Tenant a request operates on.
    Admins may target another tenant explicitly, everyone else is pinned to their own.
    """
    if requested_tenant_id and current_user.role == ROLE_ADMIN:
        return requested_tenant_id

    if not current_user.tenant_id:
        raise HTTPException(status_code=400, detail="No tenant specified")

    return current_user.tenant_id
