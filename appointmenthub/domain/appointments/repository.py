"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from ...models import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_PROVIDER,
    Appointment,
    Service,
    TenantSettings,
    User,
)
from ..scheduling.availability import RELEASED_STATUSES

# Roles allowed to take bookings
PROVIDER_ROLES = (ROLE_PROVIDER, ROLE_ADMIN)


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def list_appointments(
        db: Session,
        tenant_id: int,
        client_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        query = (
            db.query(Appointment)
            .options(
                joinedload(Appointment.client),
                joinedload(Appointment.provider),
                joinedload(Appointment.service),
            )
            .filter(Appointment.tenant_id == tenant_id)
        )
        if client_id:
            query = query.filter(Appointment.client_id == client_id)
        if provider_id:
            query = query.filter(Appointment.provider_id == provider_id)
        if start and end:
            query = query.filter(Appointment.start_time >= start, Appointment.start_time <= end)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.start_time.asc()).all()

    @staticmethod
    def get_in_tenant(db: Session, appointment_id: int, tenant_id: Optional[int]) -> Optional[Appointment]:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if tenant_id:
            query = query.filter(Appointment.tenant_id == tenant_id)
        return query.first()

    @staticmethod
    def get_service(
        db: Session, service_id: int, tenant_id: int, active_only: bool = False
    ) -> Optional[Service]:
        query = db.query(Service).filter(Service.id == service_id, Service.tenant_id == tenant_id)
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        return query.first()

    @staticmethod
    def get_member(
        db: Session,
        user_id: int,
        tenant_id: int,
        roles: Optional[Sequence[str]] = None,
        active_only: bool = False,
    ) -> Optional[User]:
        query = db.query(User).filter(User.id == user_id, User.tenant_id == tenant_id)
        if roles:
            query = query.filter(User.role.in_(roles))
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def create_client(db: Session, tenant_id: int, name: str, email: str, phone: Optional[str]) -> User:
        """Client account created on the fly by a public booking; it has no password yet"""
        client = User(
            tenant_id=tenant_id,
            name=name,
            email=email.lower(),
            phone=phone or None,
            role=ROLE_CLIENT,
            is_active=True,
        )
        db.add(client)
        db.flush()
        return client

    @staticmethod
    def get_settings(db: Session, tenant_id: int) -> Optional[TenantSettings]:
        return db.query(TenantSettings).filter(TenantSettings.tenant_id == tenant_id).first()

    @staticmethod
    def provider_ranges(
        db: Session, tenant_id: int, provider_id: int, day_start: datetime, day_end: datetime
    ) -> list[tuple[datetime, datetime]]:
        """Time ranges still held by a provider's appointments starting within the window"""
        rows = (
            db.query(Appointment.start_time, Appointment.end_time)
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.provider_id == provider_id,
                Appointment.status.notin_(RELEASED_STATUSES),
                Appointment.start_time >= day_start,
                Appointment.start_time < day_end,
            )
            .all()
        )
        return [(row.start_time, row.end_time) for row in rows]

    @staticmethod
    def create(db: Session, appointment: Appointment) -> Appointment:
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()
