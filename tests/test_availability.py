from datetime import date, datetime, timedelta

from conftest import future, make_appointment, make_service, make_user

from appointmenthub.domain.scheduling.availability import (
    build_day_slots,
    day_name,
    find_conflicting_appointment,
    intervals_overlap,
    is_slot_available,
)
from appointmenthub.models import ROLE_PROVIDER

DAY = date(2025, 1, 6)
HOURS = {"start": "09:00", "end": "11:00", "enabled": True}
BEFORE_DAY = datetime(2025, 1, 1)


def at(hour, minute=0):
    return datetime(2025, 1, 6, hour, minute)


def test_overlap_rules():
    assert intervals_overlap(at(10), at(11), at(10, 30), at(11, 30))
    assert intervals_overlap(at(10), at(11), at(9, 30), at(10, 30))
    assert intervals_overlap(at(10), at(11), at(10, 15), at(10, 45))
    assert intervals_overlap(at(10), at(11), at(9), at(12))
    assert intervals_overlap(at(10), at(11), at(10), at(11))


def test_touching_intervals_do_not_overlap():
    assert not intervals_overlap(at(10), at(11), at(11), at(12))
    assert not intervals_overlap(at(10), at(11), at(9), at(10))


def test_day_name_uses_lowercase_weekday():
    assert day_name(date(2025, 1, 5)) == "sunday"
    assert day_name(DAY) == "monday"


def test_slots_cover_working_hours_in_half_hours():
    slots = build_day_slots(DAY, HOURS, [], now=BEFORE_DAY)

    assert [s["time"] for s in slots] == ["09:00", "09:30", "10:00", "10:30"]
    assert all(s["available"] for s in slots)
    assert slots[0]["datetime"] == "2025-01-06T09:00:00"


def test_closed_day_has_no_slots():
    assert build_day_slots(DAY, {"start": "09:00", "end": "17:00", "enabled": False}, []) == []
    assert build_day_slots(DAY, None, []) == []


def test_booked_slot_is_unavailable():
    slots = build_day_slots(DAY, HOURS, [(at(10), at(10, 30))], now=BEFORE_DAY)
    availability = {s["time"]: s["available"] for s in slots}

    assert availability == {"09:00": True, "09:30": True, "10:00": False, "10:30": True}


def test_buffer_pads_existing_appointments():
    slots = build_day_slots(DAY, HOURS, [(at(10), at(10, 30))], buffer_minutes=15, now=BEFORE_DAY)
    availability = {s["time"]: s["available"] for s in slots}

    assert availability == {"09:00": True, "09:30": False, "10:00": False, "10:30": False}


def test_past_slots_are_unavailable():
    slots = build_day_slots(DAY, HOURS, [], now=at(9, 45))
    availability = {s["time"]: s["available"] for s in slots}

    assert availability == {"09:00": False, "09:30": False, "10:00": True, "10:30": True}


def test_conflict_lookup_against_database(db, seed):
    start = future(days=5, hour=10)
    booked = make_appointment(db, seed, start)
    tenant_id, provider_id = seed.tenant.id, seed.provider.id

    conflict = find_conflicting_appointment(
        db, tenant_id, provider_id, start + timedelta(minutes=30), start + timedelta(minutes=90)
    )
    assert conflict is not None and conflict.id == booked.id

    assert is_slot_available(db, tenant_id, provider_id, start + timedelta(hours=1), start + timedelta(hours=2))
    assert is_slot_available(
        db, tenant_id, provider_id, start, start + timedelta(hours=1), exclude_appointment_id=booked.id
    )


def test_cancelled_appointments_release_their_time(db, seed):
    start = future(days=5, hour=10)
    make_appointment(db, seed, start, status="CANCELLED")

    assert is_slot_available(db, seed.tenant.id, seed.provider.id, start, start + timedelta(hours=1))


def test_other_providers_do_not_conflict(db, seed):
    start = future(days=5, hour=10)
    make_appointment(db, seed, start)
    colleague = make_user(db, seed.tenant, ROLE_PROVIDER, "sam@acme.example.com", password=None)
    make_service(db, seed.tenant, colleague, name="Massage")

    assert is_slot_available(db, seed.tenant.id, colleague.id, start, start + timedelta(hours=1))
