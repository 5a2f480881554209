"""Waitlist router"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.serializers import waitlist_to_dict
from .schemas import WaitlistCreate, WaitlistNotifyRequest, WaitlistUpdate
from .service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


def get_waitlist_service(db: Session = Depends(get_db)) -> WaitlistService:
    """Dependency injection for WaitlistService"""
    return WaitlistService(db)


@router.get("")
async def list_waitlist(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    serviceId: Optional[int] = Query(None),
    providerId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return service.list_entries(current_user, page, limit, status_filter, serviceId, providerId)


@router.post("", status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    data: WaitlistCreate,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.join(data, current_user)
    return {"waitlistEntry": waitlist_to_dict(entry)}


@router.put("/notify")
async def notify_waitlist(
    data: WaitlistNotifyRequest,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """Offer freshly opened slots to matching waitlisted clients"""
    return service.notify_available_slots(data, current_user)


@router.get("/{entry_id}")
async def get_waitlist_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return {"waitlistEntry": waitlist_to_dict(service.get_entry(entry_id, current_user))}


@router.put("/{entry_id}")
async def update_waitlist_entry(
    entry_id: int,
    data: WaitlistUpdate,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.update_entry(entry_id, data, current_user)
    return {"waitlistEntry": waitlist_to_dict(entry)}


@router.delete("/{entry_id}")
async def remove_waitlist_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return service.remove_entry(entry_id, current_user)
