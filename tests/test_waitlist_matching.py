from datetime import datetime, timedelta

import pytest
from conftest import make_user

from appointmenthub.domain.waitlist.matching import (
    entry_matches_slot,
    expire_stale_entries,
    first_matching_slot,
    notify_matching_entries,
    time_preference_matches,
)
from appointmenthub.models import ROLE_CLIENT, ROLE_PROVIDER, Notification, WaitlistEntry

SLOT = datetime(2025, 2, 10, 9, 30)


def entry(**fields):
    values = dict(
        preferred_date=None,
        preferred_time_slot=None,
        flexible_dates=False,
        flexible_times=False,
    )
    values.update(fields)
    return WaitlistEntry(**values)


@pytest.mark.parametrize(
    "preference, hour, expected",
    [
        ("morning", 6, True),
        ("morning", 11, True),
        ("morning", 12, False),
        ("afternoon", 12, True),
        ("afternoon", 17, False),
        ("evening", 17, True),
        ("evening", 22, False),
    ],
)
def test_named_time_buckets(preference, hour, expected):
    assert time_preference_matches(preference, datetime(2025, 2, 10, hour, 0)) is expected


def test_explicit_time_range():
    assert time_preference_matches("09:00-10:30", datetime(2025, 2, 10, 10, 0))
    assert not time_preference_matches("09:00-10:30", datetime(2025, 2, 10, 10, 30))
    assert not time_preference_matches("09:00-10:30", datetime(2025, 2, 10, 8, 59))


def test_unreadable_preferences_never_match():
    assert not time_preference_matches("whenever", SLOT)
    assert not time_preference_matches("25:00-26:00", SLOT)


def test_same_preferred_date_matches_regardless_of_time():
    assert entry_matches_slot(entry(preferred_date=datetime(2025, 2, 10, 18, 0)), SLOT)


def test_other_date_without_flexibility_does_not_match():
    assert not entry_matches_slot(entry(preferred_date=datetime(2025, 2, 11)), SLOT)


def test_flexible_dates_match_any_slot():
    assert entry_matches_slot(entry(preferred_date=datetime(2025, 3, 1), flexible_dates=True), SLOT)


def test_time_preference_applies_only_when_times_are_fixed():
    assert entry_matches_slot(entry(preferred_time_slot="morning"), SLOT)
    assert not entry_matches_slot(entry(preferred_time_slot="evening"), SLOT)
    assert not entry_matches_slot(entry(preferred_time_slot="morning", flexible_times=True), SLOT)


def test_first_matching_slot_returns_earliest_offered_match():
    slots = [datetime(2025, 2, 10, 19, 0), datetime(2025, 2, 11, 8, 0), datetime(2025, 2, 12, 9, 0)]
    assert first_matching_slot(entry(preferred_time_slot="morning"), slots) == slots[1]
    assert first_matching_slot(entry(preferred_time_slot="afternoon"), slots) is None


def add_entry(db, seed, client, now, **fields):
    values = dict(
        tenant_id=seed.tenant.id,
        client_id=client.id,
        service_id=seed.service.id,
        provider_id=seed.provider.id,
        status="ACTIVE",
        priority=1,
        flexible_dates=False,
        flexible_times=False,
        expires_at=now + timedelta(days=30),
    )
    values.update(fields)
    waitlist_entry = WaitlistEntry(**values)
    db.add(waitlist_entry)
    db.commit()
    db.refresh(waitlist_entry)
    return waitlist_entry


def test_notify_marks_matching_entries_once(db, seed):
    now = datetime.utcnow()
    slot_start = (now + timedelta(days=2)).replace(hour=9, minute=0, second=0, microsecond=0)
    other_client = make_user(db, seed.tenant, ROLE_CLIENT, "max@acme.example.com", password=None)

    morning = add_entry(db, seed, seed.client, now, preferred_time_slot="morning")
    evening = add_entry(db, seed, other_client, now, preferred_time_slot="evening")
    slots = [{"startTime": slot_start + timedelta(hours=i)} for i in range(5)]

    notified = notify_matching_entries(db, seed.admin, seed.tenant.id, slots, now=now)
    assert notified == 1

    db.refresh(morning)
    db.refresh(evening)
    assert morning.status == "NOTIFIED"
    assert morning.notification_sent is True
    assert morning.notified_at == now
    assert evening.status == "ACTIVE"

    notification = db.query(Notification).filter(Notification.user_id == seed.client.id).one()
    assert notification.type == "waitlist_slot_available"
    assert notification.priority == "high"
    assert len(notification.data["availableSlots"]) == 3
    assert notification.data["availableSlots"][0]["startTime"] == slot_start.isoformat()

    # The same batch again reaches nobody new
    assert notify_matching_entries(db, seed.admin, seed.tenant.id, slots, now=now) == 0


def test_notify_orders_by_priority_and_filters_by_service(db, seed):
    now = datetime.utcnow()
    slot = {"startTime": now + timedelta(days=1)}
    flexible = add_entry(db, seed, seed.client, now, flexible_dates=True, priority=5)

    assert notify_matching_entries(db, seed.admin, seed.tenant.id, [slot], service_id=seed.service.id + 1, now=now) == 0
    assert notify_matching_entries(db, seed.admin, seed.tenant.id, [slot], service_id=seed.service.id, now=now) == 1

    db.refresh(flexible)
    assert flexible.status == "NOTIFIED"


def test_providers_only_reach_their_own_waitlist(db, seed):
    now = datetime.utcnow()
    colleague = make_user(db, seed.tenant, ROLE_PROVIDER, "sam@acme.example.com", password=None)
    add_entry(db, seed, seed.client, now, flexible_dates=True)
    slot = {"startTime": now + timedelta(days=1)}

    assert notify_matching_entries(db, colleague, seed.tenant.id, [slot], now=now) == 0
    assert notify_matching_entries(db, seed.provider, seed.tenant.id, [slot], now=now) == 1


def test_expired_entries_are_swept_and_skipped(db, seed):
    now = datetime.utcnow()
    stale = add_entry(db, seed, seed.client, now, flexible_dates=True, expires_at=now - timedelta(minutes=1))

    assert notify_matching_entries(db, seed.admin, seed.tenant.id, [{"startTime": now + timedelta(days=1)}], now=now) == 0

    db.refresh(stale)
    assert stale.status == "EXPIRED"
    assert expire_stale_entries(db, seed.tenant.id, now) == 0
