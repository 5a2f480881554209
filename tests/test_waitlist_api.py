from datetime import datetime, timedelta

from conftest import auth, make_user

from appointmenthub.models import ROLE_CLIENT, Notification, WaitlistEntry


def join(client, user, seed, **fields):
    payload = {"serviceId": seed.service.id, "preferredTimeSlot": "morning"}
    payload.update(fields)
    return client.post("/api/waitlist", headers=auth(user), json=payload)


def test_client_joins_waitlist(client, db, seed):
    response = join(client, seed.client, seed, notes="Any weekday")

    assert response.status_code == 201
    entry = response.json()["waitlistEntry"]
    assert entry["status"] == "ACTIVE"
    assert entry["providerId"] == seed.provider.id
    assert entry["priority"] == 1
    assert entry["client"]["email"] == "cora@acme.example.com"

    stored = db.query(WaitlistEntry).one()
    assert stored.expires_at - datetime.utcnow() > timedelta(days=29)

    joined = db.query(Notification).one()
    assert joined.user_id == seed.provider.id
    assert joined.type == "waitlist_joined"


def test_joining_twice_is_rejected(client, seed):
    join(client, seed.client, seed)
    again = join(client, seed.client, seed)

    assert again.status_code == 400
    assert again.json()["detail"] == "You are already on the waitlist for this service"


def test_only_clients_join(client, seed):
    response = join(client, seed.provider, seed)
    assert response.status_code == 403


def test_priority_bounds(client, seed):
    assert join(client, seed.client, seed, priority=11).status_code == 400


def test_listing_is_scoped_and_paginated(client, db, seed):
    other = make_user(db, seed.tenant, ROLE_CLIENT, "max@acme.example.com")
    join(client, seed.client, seed)
    join(client, other, seed, priority=8)

    as_client = client.get("/api/waitlist", headers=auth(seed.client)).json()
    as_provider = client.get("/api/waitlist", headers=auth(seed.provider)).json()

    assert as_client["pagination"]["total"] == 1
    assert as_provider["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}
    # Highest priority first
    assert as_provider["waitlistEntries"][0]["client"]["email"] == "max@acme.example.com"


def test_listing_sweeps_expired_entries(client, db, seed):
    entry_id = join(client, seed.client, seed).json()["waitlistEntry"]["id"]
    entry = db.get(WaitlistEntry, entry_id)
    entry.expires_at = datetime.utcnow() - timedelta(minutes=5)
    db.commit()

    body = client.get("/api/waitlist", headers=auth(seed.client), params={"status": "expired"}).json()
    assert [e["id"] for e in body["waitlistEntries"]] == [entry_id]


def test_status_transitions(client, seed):
    entry_id = join(client, seed.client, seed).json()["waitlistEntry"]["id"]

    notified = client.put(f"/api/waitlist/{entry_id}", headers=auth(seed.provider), json={"status": "notified"})
    back = client.put(f"/api/waitlist/{entry_id}", headers=auth(seed.provider), json={"status": "ACTIVE"})
    booked = client.put(f"/api/waitlist/{entry_id}", headers=auth(seed.client), json={"status": "BOOKED"})

    assert notified.status_code == 200
    assert notified.json()["waitlistEntry"]["notificationSent"] is True
    assert back.status_code == 400
    assert booked.json()["waitlistEntry"]["status"] == "BOOKED"


def test_client_cancel_tells_provider(client, db, seed):
    entry_id = join(client, seed.client, seed).json()["waitlistEntry"]["id"]

    response = client.put(
        f"/api/waitlist/{entry_id}",
        headers=auth(seed.client),
        json={"status": "CANCELLED", "notes": "Found another slot"},
    )

    assert response.json()["waitlistEntry"]["notes"] == "Found another slot"
    change = db.query(Notification).filter(Notification.type == "waitlist_status_changed").one()
    assert change.user_id == seed.provider.id
    assert change.data == {"waitlistId": entry_id, "oldStatus": "ACTIVE", "newStatus": "CANCELLED"}


def test_entries_of_others_are_hidden(client, db, seed):
    other = make_user(db, seed.tenant, ROLE_CLIENT, "max@acme.example.com")
    entry_id = join(client, seed.client, seed).json()["waitlistEntry"]["id"]

    assert client.get(f"/api/waitlist/{entry_id}", headers=auth(other)).status_code == 404
    assert client.get(f"/api/waitlist/{entry_id}", headers=auth(seed.admin)).status_code == 200


def test_remove_entry(client, db, seed):
    entry_id = join(client, seed.client, seed).json()["waitlistEntry"]["id"]

    response = client.delete(f"/api/waitlist/{entry_id}", headers=auth(seed.provider))

    assert response.json() == {"success": True, "message": "Waitlist entry removed successfully"}
    db.expire_all()
    assert db.get(WaitlistEntry, entry_id) is None
    removed = db.query(Notification).filter(Notification.type == "waitlist_removed").one()
    assert removed.user_id == seed.client.id


def test_notify_endpoint(client, db, seed):
    join(client, seed.client, seed)
    slot = (datetime.utcnow() + timedelta(days=2)).replace(hour=9, minute=0, second=0, microsecond=0)

    response = client.put(
        "/api/waitlist/notify",
        headers=auth(seed.provider),
        json={"availableSlots": [{"startTime": slot.isoformat(), "endTime": (slot + timedelta(hours=1)).isoformat()}]},
    )

    assert response.status_code == 200
    assert response.json() == {"notifiedCount": 1, "message": "1 clients were notified of available slots"}
    offer = db.query(Notification).filter(Notification.type == "waitlist_slot_available").one()
    assert offer.data["availableSlots"][0]["endTime"] == (slot + timedelta(hours=1)).isoformat()


def test_notify_validation(client, db, seed):
    join(client, seed.client, seed)

    missing = client.put("/api/waitlist/notify", headers=auth(seed.admin), json={})
    empty = client.put("/api/waitlist/notify", headers=auth(seed.admin), json={"availableSlots": []})
    as_client = client.put(
        "/api/waitlist/notify",
        headers=auth(seed.client),
        json={"availableSlots": [{"startTime": datetime.utcnow().isoformat()}]},
    )

    assert missing.status_code == 400
    assert missing.json()["detail"] == "Available slots required"
    assert empty.status_code == 200
    assert empty.json()["notifiedCount"] == 0
    assert as_client.status_code == 403
    db.expire_all()
    assert db.query(WaitlistEntry).one().status == "ACTIVE"
