"""Appointment service - Booking, rescheduling, status changes and cancellations"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_appointment_cancellation, send_appointment_confirmation
from ...models import ROLE_ADMIN, ROLE_CLIENT, ROLE_PROVIDER, Appointment, User
from ...services.calendar_service import (
    create_appointment_event,
    delete_appointment_event,
    event_for_appointment,
    update_appointment_event,
)
from ...services.notification_service import run_side_effect
from ...services.payment_service import PaymentError, payment_service
from ...shared.validators import to_naive_utc
from ..scheduling.availability import build_day_slots, day_name, find_conflicting_appointment
from .repository import PROVIDER_ROLES, AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate, PublicBookingRequest

logger = logging.getLogger(__name__)

# Allowed status moves; anything not listed is rejected
STATUS_TRANSITIONS = {
    "PENDING": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"COMPLETED", "CANCELLED", "NO_SHOW"},
    "COMPLETED": set(),
    "CANCELLED": set(),
    "NO_SHOW": set(),
}


def check_status_transition(current: str, new: str) -> bool:
    """
    Validate a status change.

    Returns:
        False when nothing changes, True for an allowed move

    Raises:
        HTTPException 400 for a move the state machine does not allow
    """
    if new == current:
        return False
    if new not in STATUS_TRANSITIONS.get(current, set()):
        raise HTTPException(status_code=400, detail=f"Cannot change status from {current} to {new}")
    return True


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def list_appointments(
        self,
        tenant_id: int,
        user: User,
        client_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        """Clients see their own bookings, providers their own calendar, admins everything"""
        provider_id = None
        if user.role == ROLE_CLIENT:
            client_id = user.id
        elif user.role == ROLE_PROVIDER and not client_id:
            provider_id = user.id

        return self.repo.list_appointments(
            self.db,
            tenant_id,
            client_id=client_id,
            provider_id=provider_id,
            start=to_naive_utc(start),
            end=to_naive_utc(end),
            status=status.upper() if status else None,
        )

    def _get_or_404(self, appointment_id: int, tenant_id: Optional[int]) -> Appointment:
        appointment = self.repo.get_in_tenant(self.db, appointment_id, tenant_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    @staticmethod
    def _can_access(appointment: Appointment, user: User) -> bool:
        return (
            user.role == ROLE_ADMIN
            or (user.role == ROLE_PROVIDER and appointment.provider_id == user.id)
            or (user.role == ROLE_CLIENT and appointment.client_id == user.id)
        )

    def get_appointment(self, appointment_id: int, user: User) -> Appointment:
        appointment = self._get_or_404(appointment_id, user.tenant_id)
        if not self._can_access(appointment, user):
            raise HTTPException(status_code=403, detail="Forbidden")
        return appointment

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _create_calendar_event(self, appointment: Appointment) -> None:
        event_id = await run_side_effect(
            f"Calendar event for appointment {appointment.id}",
            create_appointment_event(event_for_appointment(appointment)),
        )
        if event_id:
            appointment.calendar_event_id = event_id
            self.repo.save(self.db, appointment)

    async def _remove_calendar_event(self, appointment: Appointment) -> None:
        if not appointment.calendar_event_id:
            return
        await run_side_effect(
            f"Calendar event removal for appointment {appointment.id}",
            delete_appointment_event(appointment.calendar_event_id),
        )
        appointment.calendar_event_id = None
        self.repo.save(self.db, appointment)

    async def _sync_calendar(self, appointment: Appointment, became_cancelled: bool, moved: bool) -> None:
        """Delete on cancellation, update on reschedule, create once confirmed"""
        if became_cancelled:
            await self._remove_calendar_event(appointment)
        elif appointment.calendar_event_id and moved:
            await run_side_effect(
                f"Calendar event update for appointment {appointment.id}",
                update_appointment_event(
                    appointment.calendar_event_id, event_for_appointment(appointment)
                ),
            )
        elif not appointment.calendar_event_id and appointment.status == "CONFIRMED":
            await self._create_calendar_event(appointment)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def _ensure_free(
        self,
        tenant_id: int,
        provider_id: int,
        start: datetime,
        end: datetime,
        detail: str = "Time slot is already booked",
        exclude_id: Optional[int] = None,
    ) -> None:
        conflict = find_conflicting_appointment(
            self.db, tenant_id, provider_id, start, end, exclude_appointment_id=exclude_id
        )
        if conflict:
            raise HTTPException(status_code=409, detail=detail)

    async def create_appointment(self, data: AppointmentCreate, user: User) -> Appointment:
        tenant_id = user.tenant_id
        client_id = user.id if user.role == ROLE_CLIENT else data.clientId
        if not client_id:
            raise HTTPException(status_code=400, detail="Missing required fields")

        service = self.repo.get_service(self.db, data.serviceId, tenant_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if not self.repo.get_member(self.db, data.providerId, tenant_id, roles=PROVIDER_ROLES):
            raise HTTPException(status_code=404, detail="Provider not found")
        if not self.repo.get_member(self.db, client_id, tenant_id):
            raise HTTPException(status_code=404, detail="Client not found")

        start = to_naive_utc(data.startTime)
        end = to_naive_utc(data.endTime) if data.endTime else start + timedelta(minutes=service.duration)
        if start >= end:
            raise HTTPException(status_code=400, detail="Start time must be before end time")

        self._ensure_free(tenant_id, data.providerId, start, end)

        appointment = self.repo.create(
            self.db,
            Appointment(
                tenant_id=tenant_id,
                client_id=client_id,
                provider_id=data.providerId,
                service_id=service.id,
                start_time=start,
                end_time=end,
                notes=data.notes,
                status="PENDING",
                payment_method=data.paymentMethod,
                payment_status="PENDING",
                payment_amount=service.price,
            ),
        )
        logger.info(f"📅 Appointment {appointment.id} booked by user {user.id}")

        await run_side_effect(
            f"Confirmation email for appointment {appointment.id}",
            send_appointment_confirmation(appointment),
        )
        await self._create_calendar_event(appointment)
        return appointment

    async def book_public(self, tenant_id: int, data: PublicBookingRequest) -> tuple[Appointment, str]:
        """
        Anonymous booking from a tenant's booking page.
        Finds or creates the client account by email and applies the tenant's booking rules.
        """
        service = self.repo.get_service(self.db, data.serviceId, tenant_id, active_only=True)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found or not available")

        provider = self.repo.get_member(
            self.db, data.providerId, tenant_id, roles=PROVIDER_ROLES, active_only=True
        )
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found or not available")

        now = datetime.utcnow()
        start = to_naive_utc(data.startTime)
        end = to_naive_utc(data.endTime) if data.endTime else start + timedelta(minutes=service.duration)
        if start <= now:
            raise HTTPException(status_code=400, detail="Appointment time must be in the future")
        if start >= end:
            raise HTTPException(status_code=400, detail="Start time must be before end time")

        self._ensure_free(
            tenant_id,
            provider.id,
            start,
            end,
            detail="Time slot is already booked. Please choose a different time.",
        )

        settings = self.repo.get_settings(self.db, tenant_id)
        booking_settings = (settings.booking_settings if settings else None) or {}
        if not booking_settings.get("enableOnlineBooking"):
            raise HTTPException(
                status_code=403, detail="Online booking is not enabled for this business"
            )

        max_advance = booking_settings.get("maxAdvanceBooking")
        if max_advance and start > now + timedelta(days=max_advance):
            raise HTTPException(
                status_code=400,
                detail=f"Appointments can only be booked up to {max_advance} days in advance",
            )

        client = self.repo.get_user_by_email(self.db, data.clientEmail)
        if client and client.tenant_id != tenant_id:
            logger.warning(f"⚠️ Public booking email {data.clientEmail} belongs to another tenant")
            raise HTTPException(
                status_code=409, detail="This email is registered with another business"
            )
        if not client:
            client = self.repo.create_client(
                self.db, tenant_id, data.clientName, data.clientEmail, data.clientPhone
            )
            logger.info(f"👤 Client {client.id} created from public booking")
        elif data.clientPhone and client.phone != data.clientPhone:
            client.phone = data.clientPhone

        require_confirmation = bool(booking_settings.get("requireConfirmation"))
        # Online payments stay pending until the payment webhook confirms them
        status = "PENDING" if require_confirmation or data.paymentMethod == "ONLINE" else "CONFIRMED"

        appointment = self.repo.create(
            self.db,
            Appointment(
                tenant_id=tenant_id,
                client_id=client.id,
                provider_id=provider.id,
                service_id=service.id,
                start_time=start,
                end_time=end,
                notes=data.notes,
                status=status,
                payment_method=data.paymentMethod,
                payment_status="PENDING",
                payment_amount=service.price,
            ),
        )
        logger.info(f"🌐 Public booking {appointment.id} for tenant {tenant_id} ({status})")

        await run_side_effect(
            f"Confirmation email for appointment {appointment.id}",
            send_appointment_confirmation(appointment),
        )
        await self._create_calendar_event(appointment)

        if data.paymentMethod == "ONLINE":
            message = "Appointment created! Please complete payment to confirm your booking."
        elif require_confirmation:
            message = "Appointment request submitted! You will receive a confirmation email once approved."
        else:
            message = "Appointment booked successfully! You will receive a confirmation email shortly."
        return appointment, message

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    async def update_appointment(
        self, appointment_id: int, data: AppointmentUpdate, user: User
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id, user)
        tenant_id = appointment.tenant_id
        previous_status = appointment.status
        fields = data.model_fields_set

        if user.role == ROLE_CLIENT:
            if data.status and data.status != "CANCELLED":
                raise HTTPException(status_code=403, detail="Clients can only cancel their appointments")
            if (data.clientId and data.clientId != appointment.client_id) or (
                data.providerId and data.providerId != appointment.provider_id
            ):
                raise HTTPException(status_code=403, detail="Clients cannot reassign appointments")

        if data.status:
            check_status_transition(previous_status, data.status)

        service = appointment.service
        if data.serviceId and data.serviceId != appointment.service_id:
            service = self.repo.get_service(self.db, data.serviceId, tenant_id)
            if not service:
                raise HTTPException(status_code=404, detail="Service not found")

        provider_id = data.providerId or appointment.provider_id
        if data.providerId and not self.repo.get_member(
            self.db, data.providerId, tenant_id, roles=PROVIDER_ROLES
        ):
            raise HTTPException(status_code=404, detail="Provider not found")
        if data.clientId and not self.repo.get_member(self.db, data.clientId, tenant_id):
            raise HTTPException(status_code=404, detail="Client not found")

        start, end = appointment.start_time, appointment.end_time
        if data.startTime and data.endTime:
            start, end = to_naive_utc(data.startTime), to_naive_utc(data.endTime)
        elif data.startTime:
            start = to_naive_utc(data.startTime)
            end = start + timedelta(minutes=service.duration)
        if start >= end:
            raise HTTPException(status_code=400, detail="Start time must be before end time")

        moved = (
            start != appointment.start_time
            or end != appointment.end_time
            or provider_id != appointment.provider_id
            or service.id != appointment.service_id
        )
        if moved and (data.status or previous_status) != "CANCELLED":
            self._ensure_free(tenant_id, provider_id, start, end, exclude_id=appointment.id)

        if data.status:
            appointment.status = data.status
            if data.status == "CANCELLED" and previous_status != "CANCELLED":
                appointment.cancelled_at = datetime.utcnow()
        if "notes" in fields:
            appointment.notes = data.notes
        if data.clientId:
            appointment.client_id = data.clientId
        appointment.service_id = service.id
        appointment.provider_id = provider_id
        appointment.start_time = start
        appointment.end_time = end

        appointment = self.repo.save(self.db, appointment)
        logger.info(f"✏️ Appointment {appointment.id} updated by user {user.id}")

        became_cancelled = appointment.status == "CANCELLED" and previous_status != "CANCELLED"
        if became_cancelled:
            await run_side_effect(
                f"Cancellation email for appointment {appointment.id}",
                send_appointment_cancellation(appointment),
            )
        await self._sync_calendar(appointment, became_cancelled, moved)
        return appointment

    async def update_status(self, appointment_id: int, status: str, user: User) -> Appointment:
        appointment = self.get_appointment(appointment_id, user)
        if user.role == ROLE_CLIENT and status != "CANCELLED":
            raise HTTPException(status_code=403, detail="Clients can only cancel their appointments")

        previous_status = appointment.status
        if not check_status_transition(previous_status, status):
            return appointment

        appointment.status = status
        if status == "CANCELLED":
            appointment.cancelled_at = datetime.utcnow()
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"🔁 Appointment {appointment.id}: {previous_status} -> {status} by user {user.id}")

        if status == "CONFIRMED":
            await run_side_effect(
                f"Confirmation email for appointment {appointment.id}",
                send_appointment_confirmation(appointment),
            )
        elif status == "CANCELLED":
            await run_side_effect(
                f"Cancellation email for appointment {appointment.id}",
                send_appointment_cancellation(appointment),
            )
        await self._sync_calendar(appointment, status == "CANCELLED", moved=False)
        return appointment

    async def delete_appointment(self, appointment_id: int, user: User) -> dict:
        appointment = self._get_or_404(appointment_id, user.tenant_id)
        if user.role != ROLE_ADMIN:
            raise HTTPException(status_code=403, detail="Forbidden")

        if appointment.calendar_event_id:
            await run_side_effect(
                f"Calendar event removal for appointment {appointment.id}",
                delete_appointment_event(appointment.calendar_event_id),
            )
        # Sent while the row still exists so the template can read its relations
        await run_side_effect(
            f"Cancellation email for appointment {appointment.id}",
            send_appointment_cancellation(appointment),
        )

        self.repo.delete(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted by admin {user.id}")
        return {"message": "Appointment deleted successfully"}

    async def cancel_appointment(
        self, appointment_id: int, reason: Optional[str], user: User, tenant_id: Optional[int]
    ) -> dict:
        """
        Cancel under the tenant's cancellation policy.

        Online payments that were captured are refunded in full or in part according to
        ``refundPolicy``. A failed refund does not block the cancellation; it is reported
        as ``refundStatus: "failed"``.
        """
        appointment = self._get_or_404(appointment_id, tenant_id or user.tenant_id)

        if not (
            user.role == ROLE_ADMIN
            or user.id in (appointment.client_id, appointment.provider_id)
        ):
            raise HTTPException(status_code=403, detail="Not authorized to cancel this appointment")

        if appointment.status == "CANCELLED":
            raise HTTPException(status_code=400, detail="Appointment is already cancelled")

        now = datetime.utcnow()
        if appointment.start_time <= now:
            raise HTTPException(status_code=400, detail="Cannot cancel past appointments")
        if appointment.status not in ("PENDING", "CONFIRMED"):
            raise HTTPException(
                status_code=400, detail=f"Cannot cancel an appointment that is {appointment.status}"
            )

        settings = appointment.tenant.settings
        policy = (settings.cancellation_settings if settings else None) or {}
        if not policy.get("allowCancellation"):
            raise HTTPException(
                status_code=403, detail="Cancellation is not allowed for this business"
            )

        deadline_hours = policy.get("cancellationDeadlineHours") or 24
        if now > appointment.start_time - timedelta(hours=deadline_hours):
            raise HTTPException(
                status_code=400,
                detail=f"Cancellation must be made at least {deadline_hours} hours before the appointment",
            )

        refund_amount = 0.0
        refund_status = "none"
        if (
            appointment.payment_method == "ONLINE"
            and appointment.payment_status == "PAID"
            and appointment.charge_id
        ):
            refund_policy = policy.get("refundPolicy") or "full"
            paid = appointment.payment_amount or 0
            if refund_policy == "full":
                refund_amount = paid
            elif refund_policy == "partial":
                percentage = policy.get("partialRefundPercentage") or 50
                refund_amount = round(paid * percentage / 100, 2)

            if refund_amount > 0:
                try:
                    await payment_service.refund_charge(
                        appointment.charge_id,
                        refund_amount,
                        metadata={
                            "appointmentId": str(appointment.id),
                            "reason": reason or "Appointment cancelled",
                        },
                    )
                    refund_status = refund_policy
                except PaymentError as e:
                    logger.error(f"❌ Refund for appointment {appointment.id} failed: {e}")
                    refund_amount = 0.0
                    refund_status = "failed"

        appointment.status = "CANCELLED"
        appointment.cancellation_reason = reason
        appointment.cancelled_at = now
        if refund_amount > 0:
            appointment.payment_status = "REFUNDED"
            appointment.refund_amount = refund_amount
            appointment.refund_reason = reason
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"🚫 Appointment {appointment.id} cancelled by user {user.id} (refund: {refund_status})")

        await run_side_effect(
            f"Cancellation email for appointment {appointment.id}",
            send_appointment_cancellation(appointment, refund_amount, refund_status),
        )
        await self._remove_calendar_event(appointment)

        return {
            "success": True,
            "message": "Appointment cancelled successfully",
            "appointment": {
                "id": appointment.id,
                "status": appointment.status,
                "cancelledAt": appointment.cancelled_at,
                "refundAmount": refund_amount,
                "refundStatus": refund_status,
            },
        }

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def day_availability(self, tenant_id: int, provider_id: int, day: date) -> list[dict]:
        settings = self.repo.get_settings(self.db, tenant_id)
        if not settings:
            raise HTTPException(status_code=404, detail="Tenant settings not found")

        day_hours = (settings.working_hours or {}).get(day_name(day))
        if not day_hours or not day_hours.get("enabled"):
            return []

        day_start = datetime.combine(day, datetime.min.time())
        existing = self.repo.provider_ranges(
            self.db, tenant_id, provider_id, day_start, day_start + timedelta(days=1)
        )
        buffer_minutes = (settings.booking_settings or {}).get("bufferTime") or 0
        return build_day_slots(day, day_hours, existing, buffer_minutes=buffer_minutes)

    def check_availability(
        self, tenant_id: int, provider_id: int, start: datetime, end: datetime
    ) -> dict:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if start >= end:
            raise HTTPException(status_code=400, detail="Start time must be before end time")
        self._ensure_free(tenant_id, provider_id, start, end, detail="Time slot is not available")
        return {"available": True, "message": "Time slot is available"}

    def payment_status(self, appointment_id: int, tenant_id: Optional[int]) -> dict:
        appointment = self._get_or_404(appointment_id, tenant_id)
        return {
            "appointment": {
                "id": appointment.id,
                "startTime": appointment.start_time,
                "endTime": appointment.end_time,
                "status": appointment.status,
                "paymentMethod": appointment.payment_method,
                "paymentStatus": appointment.payment_status,
                "paymentAmount": appointment.payment_amount,
                "service": {"name": appointment.service.name, "duration": appointment.service.duration},
                "client": {"name": appointment.client.name, "email": appointment.client.email},
                "provider": {"name": appointment.provider.name},
            }
        }
