"""Service catalog service - Business logic for bookable services"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, ROLE_PROVIDER, Service, User
from .repository import ServiceRepository
from .schemas import ProviderSummary, ServiceCreate, ServiceResponse, ServiceUpdate

logger = logging.getLogger(__name__)


def service_to_response(service: Service) -> ServiceResponse:
    provider = service.provider
    return ServiceResponse(
        id=service.id,
        tenantId=service.tenant_id,
        providerId=service.provider_id,
        name=service.name,
        description=service.description,
        duration=service.duration,
        price=service.price,
        imageUrl=service.image_url,
        isActive=service.is_active,
        createdAt=service.created_at,
        provider=ProviderSummary(id=provider.id, name=provider.name, email=provider.email)
        if provider
        else None,
    )


class CatalogService:
    """Service layer for the service catalog"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def list_services(self, tenant_id: int, provider_id: Optional[int] = None) -> list[Service]:
        return self.repo.list_active(self.db, tenant_id, provider_id)

    def _check_provider(self, provider_id: Optional[int], tenant_id: int) -> None:
        if provider_id and not self.repo.get_provider(self.db, provider_id, tenant_id):
            raise HTTPException(status_code=404, detail="Provider not found")

    def create_service(self, data: ServiceCreate, current_user: User) -> Service:
        # Providers always own what they create
        provider_id = current_user.id if current_user.role == ROLE_PROVIDER else data.providerId
        self._check_provider(provider_id, current_user.tenant_id)

        service = Service(
            tenant_id=current_user.tenant_id,
            provider_id=provider_id,
            name=data.name,
            description=data.description,
            duration=data.duration,
            price=data.price,
            image_url=data.imageUrl or None,
            is_active=True,
        )
        service = self.repo.create(self.db, service)
        logger.info(f"✅ Service {service.id} '{service.name}' created by user {current_user.id}")
        return service

    def _get_editable(self, service_id: int, current_user: User) -> Service:
        service = self.repo.get_in_tenant(self.db, service_id, current_user.tenant_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if current_user.role != ROLE_ADMIN and service.provider_id != current_user.id:
            raise HTTPException(status_code=403, detail="Forbidden")
        return service

    def update_service(self, service_id: int, data: ServiceUpdate, current_user: User) -> Service:
        service = self._get_editable(service_id, current_user)
        fields = data.model_fields_set

        if "providerId" in fields and current_user.role == ROLE_ADMIN:
            self._check_provider(data.providerId, current_user.tenant_id)
            service.provider_id = data.providerId
        if data.name is not None:
            service.name = data.name
        if "description" in fields:
            service.description = data.description
        if data.duration is not None:
            service.duration = data.duration
        if data.price is not None:
            service.price = data.price
        if "imageUrl" in fields:
            service.image_url = data.imageUrl or None
        if data.isActive is not None:
            service.is_active = data.isActive

        return self.repo.save(self.db, service)

    def deactivate_service(self, service_id: int, current_user: User) -> dict:
        """Services referenced by appointments are never hard-deleted"""
        service = self._get_editable(service_id, current_user)
        service.is_active = False
        self.repo.save(self.db, service)
        logger.info(f"🗑️ Service {service_id} deactivated by user {current_user.id}")
        return {"message": "Service deleted successfully"}
