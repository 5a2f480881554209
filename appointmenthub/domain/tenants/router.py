"""Tenant router - FastAPI endpoints for tenant registration, resolution and administration"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import ROLE_ADMIN, User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    SlugAvailabilityRequest,
    TenantCreate,
    TenantRegister,
    TenantResolveRequest,
    TenantResponse,
    TenantUpdate,
)
from .service import TenantService, settings_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])

rate_limit_registration = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="tenant_register")
rate_limit_slug_check = create_rate_limiter(limit=60, window_seconds=60, key_prefix="slug_check")


def get_tenant_service(db: Session = Depends(get_db)) -> TenantService:
    """Dependency injection for TenantService"""
    return TenantService(db)


def _resolved(tenant) -> dict:
    return {
        "id": tenant.id,
        "name": tenant.name,
        "slug": tenant.slug,
        "domain": tenant.domain,
        "settings": settings_to_response(tenant.settings),
    }


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_tenant(
    data: TenantRegister,
    service: TenantService = Depends(get_tenant_service),
    _: None = Depends(rate_limit_registration),
):
    """Self-service business registration"""
    tenant = service.register(data)
    return {
        "success": True,
        "message": "Registration successful! Please check your email for verification instructions.",
        "tenant": {
            "id": tenant.id,
            "name": tenant.name,
            "slug": tenant.slug,
            "domain": tenant.domain,
        },
    }


@router.post("/check-availability")
async def check_slug_availability(
    data: SlugAvailabilityRequest,
    service: TenantService = Depends(get_tenant_service),
    _: None = Depends(rate_limit_slug_check),
):
    return service.check_slug(data.slug.strip().lower())


@router.get("/resolve")
async def resolve_tenant(
    domain: Optional[str] = Query(None),
    slug: Optional[str] = Query(None),
    service: TenantService = Depends(get_tenant_service),
):
    """Find the tenant behind a host name or slug"""
    return _resolved(service.resolve(domain, slug))


@router.post("/resolve")
async def resolve_tenant_post(
    data: TenantResolveRequest,
    service: TenantService = Depends(get_tenant_service),
):
    return _resolved(service.resolve(data.domain, data.slug))


# ============================================================================
# ADMINISTRATION
# ============================================================================


@router.get("", response_model=list[TenantResponse])
async def list_tenants(
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
    service: TenantService = Depends(get_tenant_service),
):
    return [service.to_response(t, with_counts=True) for t in service.list_tenants()]


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
    service: TenantService = Depends(get_tenant_service),
):
    tenant = service.create(data)
    logger.info(f"🏢 Tenant {tenant.slug} created by admin {current_user.id}")
    return service.to_response(tenant)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: int,
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    tenant = service.get_tenant(tenant_id, current_user)
    return service.to_response(tenant, with_counts=True)


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: int,
    data: TenantUpdate,
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    tenant = service.update_tenant(tenant_id, data, current_user)
    return service.to_response(tenant, with_counts=True)


@router.delete("/{tenant_id}")
async def delete_tenant(
    tenant_id: int,
    current_user: User = Depends(get_current_user),
    service: TenantService = Depends(get_tenant_service),
):
    return service.delete_tenant(tenant_id, current_user)
