"""Waitlist service - joining, managing and notifying the waitlist"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, ROLE_CLIENT, User, WaitlistEntry
from ...services.notification_service import create_notification
from ...shared.serializers import pagination, waitlist_to_dict
from ...shared.validators import to_naive_utc
from .matching import expire_stale_entries, notify_matching_entries
from .repository import WaitlistRepository
from .schemas import WaitlistCreate, WaitlistNotifyRequest, WaitlistUpdate

logger = logging.getLogger(__name__)

ENTRY_LIFETIME = timedelta(days=30)

STATUS_TRANSITIONS = {
    "ACTIVE": {"NOTIFIED", "BOOKED", "CANCELLED", "EXPIRED"},
    "NOTIFIED": {"BOOKED", "CANCELLED", "EXPIRED"},
    "BOOKED": set(),
    "CANCELLED": set(),
    "EXPIRED": set(),
}


class WaitlistService:
    """Service layer for the waitlist"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WaitlistRepository()

    def list_entries(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        service_id: Optional[int] = None,
        provider_id: Optional[int] = None,
    ) -> dict:
        if expire_stale_entries(self.db, user.tenant_id):
            self.db.commit()

        # Only admins may look at another provider's waitlist
        if user.role != ROLE_ADMIN:
            provider_id = None
        entries, total = self.repo.list_page(
            self.db, user.tenant_id, user, page, limit, status, service_id, provider_id
        )
        return {
            "waitlistEntries": [waitlist_to_dict(e) for e in entries],
            "pagination": pagination(page, limit, total),
        }

    def get_entry(self, entry_id: int, user: User) -> WaitlistEntry:
        entry = self.repo.get_scoped(self.db, entry_id, user.tenant_id, user)
        if not entry:
            raise HTTPException(status_code=404, detail="Waitlist entry not found")
        return entry

    def join(self, data: WaitlistCreate, user: User) -> WaitlistEntry:
        if user.role != ROLE_CLIENT:
            raise HTTPException(status_code=403, detail="Only clients can join waitlist")

        service = self.repo.get_active_service(self.db, data.serviceId, user.tenant_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        provider_id = data.providerId or service.provider_id
        provider = self.repo.get_provider(self.db, provider_id, user.tenant_id) if provider_id else None
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found")

        if self.repo.has_active_entry(self.db, user.id, service.id, provider.id):
            raise HTTPException(
                status_code=400, detail="You are already on the waitlist for this service"
            )

        entry = WaitlistEntry(
            tenant_id=user.tenant_id,
            client_id=user.id,
            service_id=service.id,
            provider_id=provider.id,
            preferred_date=to_naive_utc(data.preferredDate),
            preferred_time_slot=data.preferredTimeSlot,
            flexible_dates=data.flexibleDates,
            flexible_times=data.flexibleTimes,
            notes=data.notes,
            priority=data.priority,
            status="ACTIVE",
            expires_at=datetime.utcnow() + ENTRY_LIFETIME,
        )
        self.db.add(entry)
        self.db.flush()

        create_notification(
            self.db,
            tenant_id=user.tenant_id,
            user_id=provider.id,
            notification_type="waitlist_joined",
            title="New Waitlist Entry",
            message=f"{user.name} joined the waitlist for {service.name}",
            data={
                "waitlistId": entry.id,
                "serviceId": service.id,
                "clientName": user.name,
                "preferredDate": entry.preferred_date.isoformat() if entry.preferred_date else None,
                "preferredTimeSlot": entry.preferred_time_slot,
            },
            commit=False,
        )
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"📝 Client {user.id} joined waitlist for service {service.id}")
        return entry

    def update_entry(self, entry_id: int, data: WaitlistUpdate, user: User) -> WaitlistEntry:
        entry = self.get_entry(entry_id, user)
        previous_status = entry.status
        fields = data.model_fields_set

        if data.status and data.status != previous_status:
            if data.status not in STATUS_TRANSITIONS.get(previous_status, set()):
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot change waitlist status from {previous_status} to {data.status}",
                )
            entry.status = data.status
            if data.status == "NOTIFIED" and not entry.notification_sent:
                entry.notification_sent = True
                entry.notified_at = datetime.utcnow()

        if "preferredDate" in fields:
            entry.preferred_date = to_naive_utc(data.preferredDate)
        if "preferredTimeSlot" in fields:
            entry.preferred_time_slot = data.preferredTimeSlot
        if data.flexibleDates is not None:
            entry.flexible_dates = data.flexibleDates
        if data.flexibleTimes is not None:
            entry.flexible_times = data.flexibleTimes
        if "notes" in fields:
            entry.notes = data.notes
        if data.priority is not None:
            entry.priority = data.priority

        if entry.status != previous_status:
            self._notify_status_change(entry, previous_status, user)

        self.db.commit()
        self.db.refresh(entry)
        return entry

    def _notify_status_change(self, entry: WaitlistEntry, previous_status: str, user: User) -> None:
        service_name = entry.service.name
        if entry.status == "BOOKED":
            message = f"{entry.client.name} has booked an appointment from the waitlist for {service_name}"
            recipient = entry.provider_id
        elif entry.status == "CANCELLED":
            message = f"Waitlist entry for {service_name} has been cancelled"
            recipient = entry.provider_id if user.role == ROLE_CLIENT else entry.client_id
        elif entry.status == "EXPIRED":
            message = f"Waitlist entry for {service_name} has expired"
            recipient = entry.client_id
        else:
            return

        if recipient:
            create_notification(
                self.db,
                tenant_id=entry.tenant_id,
                user_id=recipient,
                notification_type="waitlist_status_changed",
                title="Waitlist Status Updated",
                message=message,
                data={
                    "waitlistId": entry.id,
                    "oldStatus": previous_status,
                    "newStatus": entry.status,
                },
                commit=False,
            )

    def remove_entry(self, entry_id: int, user: User) -> dict:
        entry = self.get_entry(entry_id, user)
        service_name = entry.service.name
        client_name = entry.client.name
        recipient = entry.provider_id if user.role == ROLE_CLIENT else entry.client_id

        self.db.delete(entry)
        if recipient:
            create_notification(
                self.db,
                tenant_id=user.tenant_id,
                user_id=recipient,
                notification_type="waitlist_removed",
                title="Waitlist Entry Removed",
                message=f"{client_name} has been removed from the waitlist for {service_name}",
                data={"waitlistId": entry_id, "serviceName": service_name, "clientName": client_name},
                commit=False,
            )
        self.db.commit()
        logger.info(f"🗑️ Waitlist entry {entry_id} removed by user {user.id}")
        return {"success": True, "message": "Waitlist entry removed successfully"}

    def notify_available_slots(self, data: WaitlistNotifyRequest, user: User) -> dict:
        if data.availableSlots is None:
            raise HTTPException(status_code=400, detail="Available slots required")
        if user.role == ROLE_CLIENT:
            raise HTTPException(status_code=403, detail="Unauthorized")

        slots = []
        for slot in data.availableSlots:
            offered = {"startTime": to_naive_utc(slot.startTime)}
            if slot.endTime:
                offered["endTime"] = to_naive_utc(slot.endTime)
            slots.append(offered)

        notified = notify_matching_entries(
            self.db,
            caller=user,
            tenant_id=user.tenant_id,
            available_slots=slots,
            service_id=data.serviceId,
            provider_id=data.providerId,
        )
        return {
            "notifiedCount": notified,
            "message": f"{notified} clients were notified of available slots",
        }
