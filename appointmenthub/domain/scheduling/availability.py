"""
Availability and conflict detection for provider calendars
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from ...shared.validators import parse_hhmm

logger = logging.getLogger(__name__)

SLOT_MINUTES = 30

# Appointments in these states no longer hold their time range
RELEASED_STATUSES = ("CANCELLED",)

DAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def intervals_overlap(
    existing_start: datetime,
    existing_end: datetime,
    new_start: datetime,
    new_end: datetime,
) -> bool:
    """
    True when [new_start, new_end) intersects [existing_start, existing_end).

    Either the new start falls inside the existing range, the new end falls inside
    it, or the new range swallows the existing one.
    """
    return (
        (existing_start <= new_start < existing_end)
        or (existing_start < new_end <= existing_end)
        or (new_start <= existing_start and existing_end <= new_end)
    )


def find_conflicting_appointment(
    db: Session,
    tenant_id: int,
    provider_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> Optional[Appointment]:
    """
    First appointment of the provider that overlaps the requested range.
    Cancelled appointments and the appointment being edited are ignored.
    """
    query = db.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.provider_id == provider_id,
        Appointment.status.notin_(RELEASED_STATUSES),
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    for appointment in query.order_by(Appointment.start_time).all():
        if intervals_overlap(appointment.start_time, appointment.end_time, start_time, end_time):
            logger.info(
                f"⛔ Provider {provider_id} already booked {appointment.start_time} - {appointment.end_time}"
            )
            return appointment
    return None


def is_slot_available(
    db: Session,
    tenant_id: int,
    provider_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    return (
        find_conflicting_appointment(
            db, tenant_id, provider_id, start_time, end_time, exclude_appointment_id
        )
        is None
    )


def day_name(day: date) -> str:
    return DAY_NAMES[day.isoweekday() % 7]


def build_day_slots(
    day: date,
    day_hours: Optional[dict],
    existing: Iterable[tuple[datetime, datetime]],
    buffer_minutes: int = 0,
    now: Optional[datetime] = None,
    slot_minutes: int = SLOT_MINUTES,
) -> list[dict]:
    """
    Fixed-length slots between the day's opening and closing time.

    A slot is unavailable when it overlaps an existing appointment padded by
    ``buffer_minutes`` on both sides, or when it starts at or before ``now``.
    Disabled or missing working hours yield no slots.
    """
    if not day_hours or not day_hours.get("enabled"):
        return []

    now = now or datetime.utcnow()
    opens: time = parse_hhmm(day_hours.get("start", "09:00"))
    closes: time = parse_hhmm(day_hours.get("end", "17:00"))
    buffer = timedelta(minutes=buffer_minutes or 0)
    step = timedelta(minutes=slot_minutes)

    padded = [(start - buffer, end + buffer) for start, end in existing]

    slots = []
    current = datetime.combine(day, opens)
    closing = datetime.combine(day, closes)
    while current < closing:
        slot_end = current + step
        has_conflict = any(intervals_overlap(start, end, current, slot_end) for start, end in padded)
        is_past = current <= now
        slots.append(
            {
                "time": current.strftime("%H:%M"),
                "available": not has_conflict and not is_past,
                "datetime": current.isoformat(),
            }
        )
        current = slot_end

    return slots
