"""Recurring appointment service - templates that expand into concrete appointments"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_CLIENT, ROLE_PROVIDER, Appointment, RecurringAppointment, Service, User
from ...services.notification_service import create_notification
from ...shared.serializers import pagination, recurring_to_dict
from ...shared.validators import parse_hhmm, to_naive_utc
from ..scheduling.availability import find_conflicting_appointment
from ..scheduling.recurrence import initial_batch_dates
from .repository import RecurringAppointmentRepository
from .schemas import RecurringAppointmentCreate, RecurringAppointmentUpdate

logger = logging.getLogger(__name__)

# Update fields copied onto the template when present
UPDATABLE_FIELDS = {
    "frequency": "frequency",
    "interval": "interval",
    "daysOfWeek": "days_of_week",
    "dayOfMonth": "day_of_month",
    "endDate": "end_date",
    "maxOccurrences": "max_occurrences",
    "duration": "duration",
    "notes": "notes",
    "isActive": "is_active",
    "paymentMethod": "payment_method",
    "paymentAmount": "payment_amount",
}


class RecurringAppointmentService:
    """Service layer for recurring appointments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RecurringAppointmentRepository()

    def to_dict(self, recurring: RecurringAppointment, with_recent: bool = True) -> dict:
        data = recurring_to_dict(recurring)
        if with_recent:
            data["appointments"] = [
                {"id": a.id, "startTime": a.start_time, "status": a.status}
                for a in self.repo.recent_appointments(self.db, recurring.id)
            ]
        return data

    def list_recurring(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        provider_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> dict:
        is_active = {"active": True, "inactive": False}.get((status or "").lower())
        items, total = self.repo.list_page(
            self.db, user.tenant_id, user, page, limit, is_active, provider_id, service_id
        )
        return {
            "recurringAppointments": [self.to_dict(r) for r in items],
            "pagination": pagination(page, limit, total),
        }

    def get_recurring(self, recurring_id: int, user: User) -> RecurringAppointment:
        recurring = self.repo.get_scoped(self.db, recurring_id, user.tenant_id, user)
        if not recurring:
            raise HTTPException(status_code=404, detail="Recurring appointment not found")
        return recurring

    def create_recurring(self, data: RecurringAppointmentCreate, user: User) -> dict:
        """
        Store the template and book its first batch of appointments.

        Dates that would double-book the provider are skipped; the response reports
        how many appointments were actually generated.
        """
        if user.role != ROLE_CLIENT:
            raise HTTPException(
                status_code=403, detail="Only clients can create recurring appointments"
            )

        tenant_id = user.tenant_id
        service = (
            self.db.query(Service)
            .filter(
                Service.id == data.serviceId,
                Service.tenant_id == tenant_id,
                Service.is_active.is_(True),
            )
            .first()
        )
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        provider_id = data.providerId or service.provider_id
        provider = None
        if provider_id:
            provider = (
                self.db.query(User)
                .filter(
                    User.id == provider_id,
                    User.tenant_id == tenant_id,
                    User.role == ROLE_PROVIDER,
                )
                .first()
            )
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found")

        start_time = parse_hhmm(data.startTime)
        end_date = to_naive_utc(data.endDate)
        payment_amount = data.paymentAmount or service.price

        recurring = RecurringAppointment(
            tenant_id=tenant_id,
            client_id=user.id,
            provider_id=provider.id,
            service_id=service.id,
            frequency=data.frequency,
            interval=data.interval,
            days_of_week=data.daysOfWeek,
            day_of_month=data.dayOfMonth,
            start_date=to_naive_utc(data.startDate).date(),
            start_time=data.startTime,
            end_date=end_date,
            max_occurrences=data.maxOccurrences,
            duration=data.duration,
            notes=data.notes,
            is_active=True,
            payment_method=data.paymentMethod,
            payment_amount=payment_amount,
        )
        self.db.add(recurring)
        self.db.flush()

        dates = initial_batch_dates(
            start_date=recurring.start_date,
            start_time=start_time,
            frequency=data.frequency,
            interval=data.interval,
            days_of_week=data.daysOfWeek,
            day_of_month=data.dayOfMonth,
            end_date=end_date,
            max_occurrences=data.maxOccurrences,
        )

        generated = 0
        skipped = 0
        for start in dates:
            end = start + timedelta(minutes=data.duration)
            if find_conflicting_appointment(self.db, tenant_id, provider.id, start, end):
                skipped += 1
                continue
            self.db.add(
                Appointment(
                    tenant_id=tenant_id,
                    client_id=user.id,
                    provider_id=provider.id,
                    service_id=service.id,
                    recurring_appointment_id=recurring.id,
                    start_time=start,
                    end_time=end,
                    notes=data.notes,
                    status="PENDING",
                    payment_method=data.paymentMethod,
                    payment_status="PENDING",
                    payment_amount=payment_amount,
                )
            )
            # Flush so the next date's conflict check sees this booking
            self.db.flush()
            generated += 1

        create_notification(
            self.db,
            tenant_id=tenant_id,
            user_id=provider.id,
            notification_type="recurring_appointment_created",
            title="New Recurring Appointment",
            message=f"{user.name} has created a recurring appointment for {service.name}",
            data={"recurringAppointmentId": recurring.id, "appointmentCount": generated},
            commit=False,
        )
        self.db.commit()
        self.db.refresh(recurring)

        if skipped:
            logger.warning(f"⚠️ Recurring {recurring.id}: skipped {skipped} conflicting dates")
        logger.info(f"🔁 Recurring appointment {recurring.id} created with {generated} appointments")
        return {"recurringAppointment": self.to_dict(recurring), "generatedAppointments": generated}

    def _notify_counterpart(
        self,
        recurring: RecurringAppointment,
        user: User,
        notification_type: str,
        title: str,
        message: str,
        data: dict,
    ) -> None:
        """The provider hears about client changes, the client about everyone else's"""
        recipient = recurring.provider_id if user.role == ROLE_CLIENT else recurring.client_id
        create_notification(
            self.db,
            tenant_id=recurring.tenant_id,
            user_id=recipient,
            notification_type=notification_type,
            title=title,
            message=message,
            data=data,
            commit=False,
        )

    def update_recurring(
        self, recurring_id: int, data: RecurringAppointmentUpdate, user: User
    ) -> dict:
        recurring = self.get_recurring(recurring_id, user)
        changes = []

        for field, column in UPDATABLE_FIELDS.items():
            if field not in data.model_fields_set:
                continue
            value = getattr(data, field)
            if value is None and field not in ("notes", "endDate", "maxOccurrences"):
                continue
            if field == "endDate":
                value = to_naive_utc(value)
            setattr(recurring, column, value)
            changes.append(field)

        deactivated = data.isActive is False
        if deactivated:
            cancelled = self.repo.cancel_future_appointments(
                self.db, recurring.id, "Recurring appointment deactivated", datetime.utcnow()
            )
            logger.info(f"🚫 Recurring {recurring.id} deactivated, {cancelled} future appointments cancelled")

        service_name = recurring.service.name
        self._notify_counterpart(
            recurring,
            user,
            "recurring_appointment_updated",
            "Recurring Appointment Updated",
            f"Recurring appointment for {service_name} has been "
            + ("deactivated" if deactivated else "updated"),
            {"recurringAppointmentId": recurring.id, "changes": changes},
        )
        self.db.commit()
        self.db.refresh(recurring)
        return {"recurringAppointment": self.to_dict(recurring)}

    def delete_recurring(self, recurring_id: int, user: User) -> dict:
        recurring = self.get_recurring(recurring_id, user)
        service_name = recurring.service.name

        try:
            cancelled = self.repo.cancel_future_appointments(
                self.db, recurring.id, "Recurring appointment deleted", datetime.utcnow()
            )
            self.repo.detach_appointments(self.db, recurring.id)
            self._notify_counterpart(
                recurring,
                user,
                "recurring_appointment_deleted",
                "Recurring Appointment Deleted",
                f"Recurring appointment for {service_name} has been deleted",
                {"recurringAppointmentId": recurring.id, "serviceName": service_name},
            )
            self.db.delete(recurring)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Recurring {recurring_id} deleted, {cancelled} future appointments cancelled")
        return {"success": True, "message": "Recurring appointment deleted successfully"}
