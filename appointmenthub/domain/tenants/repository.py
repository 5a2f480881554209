"""Tenant repository - Database operations for tenants and their settings"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Service, Tenant, TenantSettings, User


class TenantRepository:
    """Repository for tenant database operations"""

    @staticmethod
    def list_tenants(db: Session) -> list[Tenant]:
        return (
            db.query(Tenant)
            .options(joinedload(Tenant.settings))
            .order_by(Tenant.created_at.desc(), Tenant.id.desc())
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, tenant_id: int) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.id == tenant_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.slug == slug).first()

    @staticmethod
    def slug_or_domain_taken(db: Session, slug: str, domain: Optional[str] = None) -> bool:
        conditions = [Tenant.slug == slug]
        if domain:
            conditions.append(Tenant.domain == domain)
        return db.query(Tenant.id).filter(or_(*conditions)).first() is not None

    @staticmethod
    def find_by_domain_or_slug(
        db: Session, domain: Optional[str] = None, slug: Optional[str] = None
    ) -> Optional[Tenant]:
        """
        Match a host against stored domains (bare, https:// and http:// forms),
        fall back to its first label as a slug, then to an explicit slug.
        """
        conditions = []
        if domain:
            conditions.extend(
                [
                    Tenant.domain == domain,
                    Tenant.domain == f"https://{domain}",
                    Tenant.domain == f"http://{domain}",
                    Tenant.slug == domain.split(".")[0],
                ]
            )
        if slug:
            conditions.append(Tenant.slug == slug)
        if not conditions:
            return None
        return (
            db.query(Tenant)
            .options(joinedload(Tenant.settings))
            .filter(or_(*conditions))
            .order_by(Tenant.id)
            .first()
        )

    @staticmethod
    def get_settings(db: Session, tenant_id: int) -> Optional[TenantSettings]:
        return db.query(TenantSettings).filter(TenantSettings.tenant_id == tenant_id).first()

    @staticmethod
    def counts(db: Session, tenant_id: int) -> dict[str, int]:
        def count(model) -> int:
            return db.query(func.count(model.id)).filter(model.tenant_id == tenant_id).scalar() or 0

        return {
            "users": count(User),
            "services": count(Service),
            "appointments": count(Appointment),
        }

    @staticmethod
    def create_with_settings_and_admin(
        db: Session, tenant: Tenant, settings: TenantSettings, admin: User
    ) -> Tenant:
        """Create tenant, default settings and its first admin in one transaction"""
        try:
            db.add(tenant)
            db.flush()
            settings.tenant_id = tenant.id
            admin.tenant_id = tenant.id
            db.add(settings)
            db.add(admin)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(tenant)
        return tenant

    @staticmethod
    def save(db: Session, tenant: Tenant) -> Tenant:
        db.commit()
        db.refresh(tenant)
        return tenant

    @staticmethod
    def delete(db: Session, tenant: Tenant) -> None:
        db.delete(tenant)
        db.commit()
