"""Waitlist repository"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ROLE_CLIENT, ROLE_PROVIDER, Service, User, WaitlistEntry


class WaitlistRepository:
    """Repository for waitlist database operations"""

    @staticmethod
    def _scoped(db: Session, tenant_id: int, user: User):
        query = db.query(WaitlistEntry).filter(WaitlistEntry.tenant_id == tenant_id)
        if user.role == ROLE_PROVIDER:
            query = query.filter(WaitlistEntry.provider_id == user.id)
        elif user.role == ROLE_CLIENT:
            query = query.filter(WaitlistEntry.client_id == user.id)
        return query

    @staticmethod
    def list_page(
        db: Session,
        tenant_id: int,
        user: User,
        page: int,
        limit: int,
        status: Optional[str] = None,
        service_id: Optional[int] = None,
        provider_id: Optional[int] = None,
    ) -> tuple[list[WaitlistEntry], int]:
        query = WaitlistRepository._scoped(db, tenant_id, user)
        if status:
            query = query.filter(WaitlistEntry.status == status.upper())
        if service_id:
            query = query.filter(WaitlistEntry.service_id == service_id)
        if provider_id:
            query = query.filter(WaitlistEntry.provider_id == provider_id)

        total = query.count()
        entries = (
            query.options(
                joinedload(WaitlistEntry.client),
                joinedload(WaitlistEntry.provider),
                joinedload(WaitlistEntry.service),
            )
            .order_by(WaitlistEntry.priority.desc(), WaitlistEntry.created_at.asc(), WaitlistEntry.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return entries, total

    @staticmethod
    def get_scoped(db: Session, entry_id: int, tenant_id: int, user: User) -> Optional[WaitlistEntry]:
        return WaitlistRepository._scoped(db, tenant_id, user).filter(WaitlistEntry.id == entry_id).first()

    @staticmethod
    def get_active_service(db: Session, service_id: int, tenant_id: int) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.tenant_id == tenant_id, Service.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_provider(db: Session, provider_id: int, tenant_id: int) -> Optional[User]:
        return (
            db.query(User)
            .filter(User.id == provider_id, User.tenant_id == tenant_id, User.role == ROLE_PROVIDER)
            .first()
        )

    @staticmethod
    def has_active_entry(db: Session, client_id: int, service_id: int, provider_id: Optional[int]) -> bool:
        return (
            db.query(WaitlistEntry.id)
            .filter(
                WaitlistEntry.client_id == client_id,
                WaitlistEntry.service_id == service_id,
                WaitlistEntry.provider_id == provider_id,
                WaitlistEntry.status == "ACTIVE",
            )
            .first()
            is not None
        )
