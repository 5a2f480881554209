"""Service catalog repository"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ROLE_ADMIN, ROLE_PROVIDER, Service, User


class ServiceRepository:
    """Repository for service catalog database operations"""

    @staticmethod
    def list_active(db: Session, tenant_id: int, provider_id: Optional[int] = None) -> list[Service]:
        query = (
            db.query(Service)
            .options(joinedload(Service.provider))
            .filter(Service.tenant_id == tenant_id, Service.is_active.is_(True))
        )
        if provider_id:
            query = query.filter(Service.provider_id == provider_id)
        return query.order_by(Service.name.asc()).all()

    @staticmethod
    def get_in_tenant(db: Session, service_id: int, tenant_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id, Service.tenant_id == tenant_id).first()

    @staticmethod
    def get_provider(db: Session, provider_id: int, tenant_id: int) -> Optional[User]:
        return (
            db.query(User)
            .filter(
                User.id == provider_id,
                User.tenant_id == tenant_id,
                User.role.in_((ROLE_PROVIDER, ROLE_ADMIN)),
            )
            .first()
        )

    @staticmethod
    def create(db: Session, service: Service) -> Service:
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def save(db: Session, service: Service) -> Service:
        db.commit()
        db.refresh(service)
        return service
