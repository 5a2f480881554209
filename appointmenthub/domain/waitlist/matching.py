"""
Waitlist matching

Decides which waitlist entries care about a batch of freshly opened slots and
marks each of them as notified exactly once.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ...models import ROLE_PROVIDER, User, WaitlistEntry
from ...services.notification_service import create_notification
from ...shared.validators import parse_hhmm

logger = logging.getLogger(__name__)

# Hour buckets, start inclusive, end exclusive
TIME_SLOT_BUCKETS = {
    "morning": (6, 12),
    "afternoon": (12, 17),
    "evening": (17, 22),
}

SLOTS_IN_NOTIFICATION = 3


def time_preference_matches(preferred_time_slot: str, slot_start: datetime) -> bool:
    """Slot start falls in a named bucket (morning/afternoon/evening) or an "HH:MM-HH:MM" range"""
    bucket = TIME_SLOT_BUCKETS.get(preferred_time_slot)
    if bucket:
        return bucket[0] <= slot_start.hour < bucket[1]

    if "-" in preferred_time_slot:
        start_text, end_text = preferred_time_slot.split("-", 1)
        try:
            range_start = parse_hhmm(start_text.strip())
            range_end = parse_hhmm(end_text.strip())
        except ValueError:
            logger.warning(f"⚠️ Unreadable preferred time slot: {preferred_time_slot}")
            return False
        return range_start <= slot_start.time() < range_end

    return False


def entry_matches_slot(entry: WaitlistEntry, slot_start: datetime) -> bool:
    """
    Preference rules, first satisfied wins:
    same calendar date as the preferred date, flexible dates, then time-of-day preference
    (only when the client is not flexible about times).
    """
    if entry.preferred_date and entry.preferred_date.date() == slot_start.date():
        return True

    if entry.flexible_dates:
        return True

    if entry.preferred_time_slot and not entry.flexible_times:
        return time_preference_matches(entry.preferred_time_slot, slot_start)

    return False


def first_matching_slot(entry: WaitlistEntry, slot_starts: Sequence[datetime]) -> Optional[datetime]:
    for slot_start in slot_starts:
        if entry_matches_slot(entry, slot_start):
            return slot_start
    return None


def expire_stale_entries(db: Session, tenant_id: int, now: Optional[datetime] = None) -> int:
    """Move ACTIVE entries whose expiry has passed to EXPIRED"""
    now = now or datetime.utcnow()
    expired = (
        db.query(WaitlistEntry)
        .filter(
            WaitlistEntry.tenant_id == tenant_id,
            WaitlistEntry.status == "ACTIVE",
            WaitlistEntry.expires_at.isnot(None),
            WaitlistEntry.expires_at <= now,
        )
        .all()
    )
    for entry in expired:
        entry.status = "EXPIRED"
    if expired:
        logger.info(f"⌛ Expired {len(expired)} waitlist entries for tenant {tenant_id}")
    return len(expired)


def notify_matching_entries(
    db: Session,
    caller: User,
    tenant_id: int,
    available_slots: Sequence[dict],
    service_id: Optional[int] = None,
    provider_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Notify waitlisted clients whose preferences fit the offered slots.

    Args:
        caller: User offering the slots; providers only reach their own waitlist
        available_slots: Dicts with a ``startTime`` datetime (and optionally ``endTime``)
        service_id: Restrict to entries for this service
        provider_id: Restrict to entries for this provider

    Returns:
        Number of entries notified
    """
    now = now or datetime.utcnow()

    expire_stale_entries(db, tenant_id, now)

    query = db.query(WaitlistEntry).filter(
        WaitlistEntry.tenant_id == tenant_id,
        WaitlistEntry.status == "ACTIVE",
        WaitlistEntry.expires_at > now,
    )
    if service_id:
        query = query.filter(WaitlistEntry.service_id == service_id)
    if provider_id:
        query = query.filter(WaitlistEntry.provider_id == provider_id)
    if caller.role == ROLE_PROVIDER:
        query = query.filter(WaitlistEntry.provider_id == caller.id)

    entries = query.order_by(
        WaitlistEntry.priority.desc(), WaitlistEntry.created_at.asc(), WaitlistEntry.id.asc()
    ).all()

    slot_starts = [slot["startTime"] for slot in available_slots]
    offered = [
        {key: value.isoformat() if isinstance(value, datetime) else value for key, value in slot.items()}
        for slot in available_slots[:SLOTS_IN_NOTIFICATION]
    ]

    notified_count = 0
    for entry in entries:
        if entry.notification_sent:
            continue
        if first_matching_slot(entry, slot_starts) is None:
            continue

        entry.status = "NOTIFIED"
        entry.notification_sent = True
        entry.notified_at = now

        create_notification(
            db,
            tenant_id=tenant_id,
            user_id=entry.client_id,
            notification_type="waitlist_slot_available",
            title="Appointment Slot Available",
            message=f"A slot is now available for {entry.service.name}. Book now!",
            data={
                "waitlistId": entry.id,
                "serviceId": entry.service_id,
                "providerId": entry.provider_id,
                "availableSlots": offered,
            },
            priority="high",
            commit=False,
        )
        notified_count += 1

    db.commit()
    logger.info(f"📣 Waitlist notify: {notified_count} of {len(entries)} entries matched")
    return notified_count
