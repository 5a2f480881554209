from datetime import datetime, timedelta

from conftest import auth, make_appointment

from appointmenthub.models import Appointment, Notification, RecurringAppointment


def tomorrow() -> datetime:
    return (datetime.utcnow() + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)


def template(seed, **overrides):
    payload = {
        "frequency": "DAILY",
        "duration": 60,
        "serviceId": seed.service.id,
        "startDate": tomorrow().isoformat(),
        "startTime": "10:00",
        "maxOccurrences": 5,
    }
    payload.update(overrides)
    return payload


def create(client, seed, **overrides):
    return client.post("/api/recurring-appointments", headers=auth(seed.client), json=template(seed, **overrides))


def test_create_books_first_batch(client, db, seed):
    response = create(client, seed, notes="Standing slot")

    assert response.status_code == 201
    body = response.json()
    assert body["generatedAppointments"] == 5
    recurring = body["recurringAppointment"]
    assert recurring["providerId"] == seed.provider.id
    assert recurring["paymentAmount"] == 50.0
    assert recurring["isActive"] is True
    assert len(recurring["appointments"]) == 5

    appointments = db.query(Appointment).order_by(Appointment.start_time).all()
    assert [a.start_time for a in appointments] == [
        tomorrow() + timedelta(days=i, hours=10) for i in range(5)
    ]
    assert all(a.status == "PENDING" and a.notes == "Standing slot" for a in appointments)

    notification = db.query(Notification).one()
    assert notification.user_id == seed.provider.id
    assert notification.type == "recurring_appointment_created"
    assert notification.data["appointmentCount"] == 5


def test_conflicting_dates_are_skipped(client, db, seed):
    make_appointment(db, seed, tomorrow() + timedelta(days=1, hours=10, minutes=30))

    response = create(client, seed)

    assert response.status_code == 201
    assert response.json()["generatedAppointments"] == 4
    assert db.query(Appointment).filter(Appointment.recurring_appointment_id.isnot(None)).count() == 4


def test_weekly_template_needs_days(client, seed):
    response = create(client, seed, frequency="WEEKLY")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid data"


def test_rule_field_validation(client, seed):
    assert create(client, seed, frequency="HOURLY").status_code == 400
    assert create(client, seed, frequency="MONTHLY").status_code == 400
    assert create(client, seed, startTime="25:00").status_code == 400
    assert create(client, seed, duration=10).status_code == 400
    assert create(client, seed, frequency="WEEKLY", daysOfWeek=[7]).status_code == 400


def test_start_beyond_three_months_generates_nothing_yet(client, seed):
    response = create(client, seed, startDate=(datetime.utcnow() + timedelta(days=120)).isoformat())

    assert response.status_code == 201
    assert response.json()["generatedAppointments"] == 0


def test_only_clients_create_templates(client, seed):
    response = client.post("/api/recurring-appointments", headers=auth(seed.provider), json=template(seed))

    assert response.status_code == 403
    assert response.json()["detail"] == "Only clients can create recurring appointments"


def test_listing_is_paginated_and_scoped(client, db, seed, other_seed):
    create(client, seed)
    create(client, seed, startTime="15:00", maxOccurrences=2)

    as_client = client.get("/api/recurring-appointments", headers=auth(seed.client), params={"limit": 1})
    as_outsider = client.get("/api/recurring-appointments", headers=auth(other_seed.admin))

    body = as_client.json()
    assert len(body["recurringAppointments"]) == 1
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    assert as_outsider.json()["pagination"]["total"] == 0


def test_get_single_template(client, seed):
    recurring_id = create(client, seed).json()["recurringAppointment"]["id"]

    found = client.get(f"/api/recurring-appointments/{recurring_id}", headers=auth(seed.provider))
    missing = client.get("/api/recurring-appointments/999", headers=auth(seed.provider))

    assert found.json()["recurringAppointment"]["id"] == recurring_id
    assert missing.status_code == 404


def test_deactivating_cancels_future_appointments(client, db, seed):
    recurring_id = create(client, seed).json()["recurringAppointment"]["id"]

    response = client.put(
        f"/api/recurring-appointments/{recurring_id}", headers=auth(seed.client), json={"isActive": False}
    )

    assert response.status_code == 200
    assert response.json()["recurringAppointment"]["isActive"] is False
    db.expire_all()
    statuses = {a.status for a in db.query(Appointment).all()}
    assert statuses == {"CANCELLED"}

    update_note = (
        db.query(Notification).filter(Notification.type == "recurring_appointment_updated").one()
    )
    assert update_note.user_id == seed.provider.id
    assert "deactivated" in update_note.message


def test_inactive_filter(client, seed):
    first = create(client, seed).json()["recurringAppointment"]["id"]
    create(client, seed, startTime="15:00", maxOccurrences=1)
    client.put(f"/api/recurring-appointments/{first}", headers=auth(seed.client), json={"isActive": False})

    inactive = client.get(
        "/api/recurring-appointments", headers=auth(seed.client), params={"status": "inactive"}
    ).json()
    assert [r["id"] for r in inactive["recurringAppointments"]] == [first]


def test_delete_keeps_history_detached(client, db, seed):
    recurring_id = create(client, seed).json()["recurringAppointment"]["id"]

    response = client.delete(f"/api/recurring-appointments/{recurring_id}", headers=auth(seed.provider))

    assert response.json() == {"success": True, "message": "Recurring appointment deleted successfully"}
    db.expire_all()
    assert db.get(RecurringAppointment, recurring_id) is None
    appointments = db.query(Appointment).all()
    assert len(appointments) == 5
    assert all(a.recurring_appointment_id is None and a.status == "CANCELLED" for a in appointments)

    # Provider deleted it, so the client hears about it
    deleted_note = db.query(Notification).filter(Notification.type == "recurring_appointment_deleted").one()
    assert deleted_note.user_id == seed.client.id
