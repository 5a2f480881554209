"""JSON shapes shared by several domains (camelCase keys, nested summaries)"""

from typing import Optional

from ..models import Appointment, RecurringAppointment, Service, User, WaitlistEntry


def user_summary(user: Optional[User], with_phone: bool = False) -> Optional[dict]:
    if user is None:
        return None
    data = {"id": user.id, "name": user.name, "email": user.email}
    if with_phone:
        data["phone"] = user.phone
    return data


def service_summary(service: Optional[Service]) -> Optional[dict]:
    if service is None:
        return None
    return {
        "id": service.id,
        "name": service.name,
        "duration": service.duration,
        "price": service.price,
    }


def appointment_to_dict(appointment: Appointment) -> dict:
    return {
        "id": appointment.id,
        "tenantId": appointment.tenant_id,
        "clientId": appointment.client_id,
        "providerId": appointment.provider_id,
        "serviceId": appointment.service_id,
        "recurringAppointmentId": appointment.recurring_appointment_id,
        "startTime": appointment.start_time,
        "endTime": appointment.end_time,
        "status": appointment.status,
        "notes": appointment.notes,
        "paymentMethod": appointment.payment_method,
        "paymentStatus": appointment.payment_status,
        "paymentAmount": appointment.payment_amount,
        "refundAmount": appointment.refund_amount,
        "cancellationReason": appointment.cancellation_reason,
        "cancelledAt": appointment.cancelled_at,
        "calendarEventId": appointment.calendar_event_id,
        "createdAt": appointment.created_at,
        "updatedAt": appointment.updated_at,
        "client": user_summary(appointment.client, with_phone=True),
        "provider": user_summary(appointment.provider),
        "service": service_summary(appointment.service),
    }


def recurring_to_dict(recurring: RecurringAppointment) -> dict:
    return {
        "id": recurring.id,
        "tenantId": recurring.tenant_id,
        "clientId": recurring.client_id,
        "providerId": recurring.provider_id,
        "serviceId": recurring.service_id,
        "frequency": recurring.frequency,
        "interval": recurring.interval,
        "daysOfWeek": recurring.days_of_week or [],
        "dayOfMonth": recurring.day_of_month,
        "startDate": recurring.start_date,
        "startTime": recurring.start_time,
        "endDate": recurring.end_date,
        "maxOccurrences": recurring.max_occurrences,
        "duration": recurring.duration,
        "notes": recurring.notes,
        "isActive": recurring.is_active,
        "paymentMethod": recurring.payment_method,
        "paymentAmount": recurring.payment_amount,
        "createdAt": recurring.created_at,
        "updatedAt": recurring.updated_at,
        "client": user_summary(recurring.client),
        "provider": user_summary(recurring.provider),
        "service": service_summary(recurring.service),
    }


def waitlist_to_dict(entry: WaitlistEntry) -> dict:
    return {
        "id": entry.id,
        "tenantId": entry.tenant_id,
        "clientId": entry.client_id,
        "serviceId": entry.service_id,
        "providerId": entry.provider_id,
        "preferredDate": entry.preferred_date,
        "preferredTimeSlot": entry.preferred_time_slot,
        "flexibleDates": entry.flexible_dates,
        "flexibleTimes": entry.flexible_times,
        "notes": entry.notes,
        "priority": entry.priority,
        "status": entry.status,
        "notificationSent": entry.notification_sent,
        "notifiedAt": entry.notified_at,
        "expiresAt": entry.expires_at,
        "createdAt": entry.created_at,
        "updatedAt": entry.updated_at,
        "client": user_summary(entry.client, with_phone=True),
        "provider": user_summary(entry.provider),
        "service": service_summary(entry.service),
    }


def pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit}
