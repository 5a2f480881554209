"""Recurring appointment repository"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ROLE_CLIENT, ROLE_PROVIDER, Appointment, RecurringAppointment, User


class RecurringAppointmentRepository:
    """Repository for recurring appointment database operations"""

    @staticmethod
    def _scoped(db: Session, tenant_id: int, user: User):
        query = db.query(RecurringAppointment).filter(RecurringAppointment.tenant_id == tenant_id)
        if user.role == ROLE_PROVIDER:
            query = query.filter(RecurringAppointment.provider_id == user.id)
        elif user.role == ROLE_CLIENT:
            query = query.filter(RecurringAppointment.client_id == user.id)
        return query

    @staticmethod
    def list_page(
        db: Session,
        tenant_id: int,
        user: User,
        page: int,
        limit: int,
        is_active: Optional[bool] = None,
        provider_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> tuple[list[RecurringAppointment], int]:
        query = RecurringAppointmentRepository._scoped(db, tenant_id, user)
        if is_active is not None:
            query = query.filter(RecurringAppointment.is_active.is_(is_active))
        if provider_id:
            query = query.filter(RecurringAppointment.provider_id == provider_id)
        if service_id:
            query = query.filter(RecurringAppointment.service_id == service_id)

        total = query.count()
        items = (
            query.options(
                joinedload(RecurringAppointment.client),
                joinedload(RecurringAppointment.provider),
                joinedload(RecurringAppointment.service),
            )
            .order_by(RecurringAppointment.created_at.desc(), RecurringAppointment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_scoped(
        db: Session, recurring_id: int, tenant_id: int, user: User
    ) -> Optional[RecurringAppointment]:
        return (
            RecurringAppointmentRepository._scoped(db, tenant_id, user)
            .filter(RecurringAppointment.id == recurring_id)
            .first()
        )

    @staticmethod
    def recent_appointments(db: Session, recurring_id: int, limit: int = 5) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.recurring_appointment_id == recurring_id)
            .order_by(Appointment.start_time.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def cancel_future_appointments(db: Session, recurring_id: int, reason: str, now: datetime) -> int:
        return (
            db.query(Appointment)
            .filter(
                Appointment.recurring_appointment_id == recurring_id,
                Appointment.start_time >= now,
                Appointment.status.in_(("PENDING", "CONFIRMED")),
            )
            .update(
                {
                    Appointment.status: "CANCELLED",
                    Appointment.cancellation_reason: reason,
                    Appointment.cancelled_at: now,
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def detach_appointments(db: Session, recurring_id: int) -> None:
        """Keep appointment history when its template goes away"""
        db.query(Appointment).filter(Appointment.recurring_appointment_id == recurring_id).update(
            {Appointment.recurring_appointment_id: None}, synchronize_session=False
        )
