"""Service catalog router"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_request_tenant_id, require_roles, resolve_tenant_scope
from ...database import get_db
from ...models import ROLE_ADMIN, ROLE_PROVIDER, User
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService, service_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("/public", response_model=list[ServiceResponse])
async def get_public_services(
    providerId: Optional[int] = Query(None),
    tenant_id: int = Depends(get_request_tenant_id),
    service: CatalogService = Depends(get_catalog_service),
):
    """Active services of the tenant behind the request host, no login needed"""
    return [service_to_response(s) for s in service.list_services(tenant_id, providerId)]


@router.get("", response_model=list[ServiceResponse])
async def get_services(
    providerId: Optional[int] = Query(None),
    tenantId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    tenant_id = resolve_tenant_scope(current_user, tenantId)
    return [service_to_response(s) for s in service.list_services(tenant_id, providerId)]


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return service_to_response(service.create_service(data, current_user))


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return service_to_response(service.update_service(service_id, data, current_user))


@router.delete("/{service_id}")
async def delete_service(
    service_id: int,
    current_user: User = Depends(require_roles(ROLE_PROVIDER, ROLE_ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.deactivate_service(service_id, current_user)
