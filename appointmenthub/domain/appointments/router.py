"""Appointment router - FastAPI endpoints for bookings and availability"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import (
    get_current_user,
    get_optional_request_tenant_id,
    get_request_tenant_id,
    resolve_tenant_scope,
)
from ...database import get_db
from ...models import ROLE_ADMIN, User
from ...rate_limiter import create_rate_limiter
from ...shared.serializers import appointment_to_dict
from .schemas import (
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    CancelAppointmentRequest,
    PublicBookingRequest,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

rate_limit_public_booking = create_rate_limiter(
    limit=20, window_seconds=3600, key_prefix="public_booking"
)


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# PUBLIC BOOKING ENDPOINTS (tenant resolved from the request)
# ============================================================================


@router.get("/availability")
async def get_availability(
    providerId: int = Query(...),
    day: date = Query(..., alias="date"),
    tenant_id: int = Depends(get_request_tenant_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    """30-minute slot grid for one provider on one day"""
    return service.day_availability(tenant_id, providerId, day)


@router.get("/check-availability")
async def check_availability(
    providerId: int = Query(...),
    startTime: datetime = Query(...),
    endTime: datetime = Query(...),
    tenant_id: int = Depends(get_request_tenant_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.check_availability(tenant_id, providerId, startTime, endTime)


@router.post("/public", status_code=status.HTTP_201_CREATED)
async def create_public_appointment(
    data: PublicBookingRequest,
    tenant_id: int = Depends(get_request_tenant_id),
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(rate_limit_public_booking),
):
    """Book without an account; the client is looked up or created by email"""
    appointment, message = await service.book_public(tenant_id, data)
    return {
        "success": True,
        "message": message,
        "appointment": {
            "id": appointment.id,
            "startTime": appointment.start_time,
            "endTime": appointment.end_time,
            "status": appointment.status,
            "paymentMethod": appointment.payment_method,
            "paymentStatus": appointment.payment_status,
            "paymentAmount": appointment.payment_amount,
            "service": {
                "name": appointment.service.name,
                "duration": appointment.service.duration,
                "price": appointment.service.price,
            },
            "provider": {"name": appointment.provider.name},
        },
    }


# ============================================================================
# AUTHENTICATED ENDPOINTS
# ============================================================================


@router.get("")
async def get_appointments(
    clientId: Optional[int] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    tenantId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    tenant_id = resolve_tenant_scope(current_user, tenantId)
    appointments = service.list_appointments(
        tenant_id, current_user, clientId, startDate, endDate, status_filter
    )
    return [appointment_to_dict(a) for a in appointments]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.create_appointment(data, current_user)
    return appointment_to_dict(appointment)


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_to_dict(service.get_appointment(appointment_id, current_user))


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Reschedule or edit an appointment"""
    appointment = await service.update_appointment(appointment_id, data, current_user)
    return appointment_to_dict(appointment)


@router.patch("/{appointment_id}")
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.update_status(appointment_id, data.status, current_user)
    return appointment_to_dict(appointment)


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.delete_appointment(appointment_id, current_user)


@router.post("/{appointment_id}/cancel")
async def cancel_appointment(
    appointment_id: int,
    data: Optional[CancelAppointmentRequest] = None,
    current_user: User = Depends(get_current_user),
    tenant_id: Optional[int] = Depends(get_optional_request_tenant_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel under the tenant's cancellation policy, refunding online payments"""
    if current_user.role != ROLE_ADMIN:
        tenant_id = current_user.tenant_id
    reason = data.reason if data else None
    return await service.cancel_appointment(appointment_id, reason, current_user, tenant_id)


@router.get("/{appointment_id}/payment-status")
async def get_payment_status(
    appointment_id: int,
    tenant_id: Optional[int] = Depends(get_optional_request_tenant_id),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Polled by the payment confirmation page"""
    return service.payment_status(appointment_id, tenant_id)
