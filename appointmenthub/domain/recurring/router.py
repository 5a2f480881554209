"""Recurring appointment router"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import RecurringAppointmentCreate, RecurringAppointmentUpdate
from .service import RecurringAppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring-appointments", tags=["Recurring Appointments"])


def get_recurring_service(db: Session = Depends(get_db)) -> RecurringAppointmentService:
    """Dependency injection for RecurringAppointmentService"""
    return RecurringAppointmentService(db)


@router.get("")
async def list_recurring_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    providerId: Optional[int] = Query(None),
    serviceId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Paginated templates, optionally filtered by status=active|inactive"""
    return service.list_recurring(current_user, page, limit, status_filter, providerId, serviceId)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_recurring_appointment(
    data: RecurringAppointmentCreate,
    current_user: User = Depends(get_current_user),
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    return service.create_recurring(data, current_user)


@router.get("/{recurring_id}")
async def get_recurring_appointment(
    recurring_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    recurring = service.get_recurring(recurring_id, current_user)
    return {"recurringAppointment": service.to_dict(recurring)}


@router.put("/{recurring_id}")
async def update_recurring_appointment(
    recurring_id: int,
    data: RecurringAppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Update the template; isActive=false cancels its future appointments"""
    return service.update_recurring(recurring_id, data, current_user)


@router.delete("/{recurring_id}")
async def delete_recurring_appointment(
    recurring_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    return service.delete_recurring(recurring_id, current_user)
