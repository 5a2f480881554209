"""Auth router - session token login and current user"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Tenant, User
from ...rate_limiter import create_rate_limiter
from ...security_utils import create_session_token, verify_password_bcrypt
from ..users.schemas import UserResponse
from ..users.service import user_to_response
from .schemas import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    """Exchange email and password for a bearer session token"""
    user = db.query(User).filter(User.email == data.email.lower()).first()

    if not user or not verify_password_bcrypt(data.password, user.password_hash):
        logger.warning(f"🔒 Failed login for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if data.tenantSlug:
        tenant = db.query(Tenant).filter(Tenant.slug == data.tenantSlug).first()
        if not tenant or tenant.id != user.tenant_id:
            logger.warning(f"🔒 User {user.id} tried to sign in to foreign tenant {data.tenantSlug}")
            raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    logger.info(f"✅ User {user.id} signed in")
    return LoginResponse(
        accessToken=create_session_token(user),
        tokenType="bearer",
        user=user_to_response(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user)
